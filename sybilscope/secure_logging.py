"""
Secure logging configuration for SybilScope.

Cluster membership of a wallet is investigative data: logs should show
enough of an address to correlate events, never the whole thing. Provides
structlog configuration plus processors that partially redact identifiers
and strip anything that looks like key material.
"""

import re
from typing import Any, Dict

import structlog
from structlog.types import EventDict, WrappedLogger


# Sensitive data patterns to redact from logs
SENSITIVE_PATTERNS = {
    # Private keys (Ethereum format)
    'private_key': re.compile(r'0x[a-fA-F0-9]{64}'),

    # URLs with auth tokens
    'auth_url': re.compile(r'https?://[^/]*:[^@]*@[^\s]+'),
}

# Field names that must never be logged
SENSITIVE_FIELD_NAMES = {
    'password', 'secret', 'token', 'credential', 'private_key', 'api_key'
}

# Field names for partial redaction (show first/last few characters)
PARTIALLY_REDACTED_FIELDS = {
    'wallet', 'address', 'entity_id'
}


def sanitize_string(text: str) -> str:
    """Redact sensitive patterns from a string."""
    if not isinstance(text, str):
        return text

    sanitized = text
    for pattern_name, pattern in SENSITIVE_PATTERNS.items():
        sanitized = pattern.sub(f'[REDACTED_{pattern_name.upper()}]', sanitized)

    return sanitized


def partially_redact(value: str, show_chars: int = 4) -> str:
    """
    Partially redact a string, showing only first and last few characters.

    Args:
        value: String to partially redact
        show_chars: Number of characters to show at start and end

    Returns:
        Partially redacted string
    """
    if not isinstance(value, str) or len(value) <= show_chars * 2:
        return value

    if len(value) <= 10:
        return f"{value[:3]}***"

    return f"{value[:show_chars]}***{value[-show_chars:]}"


def _sanitize_value(key: str, value: Any, depth: int) -> Any:
    key_lower = key.lower()

    if any(sensitive in key_lower for sensitive in SENSITIVE_FIELD_NAMES):
        return '[REDACTED_SENSITIVE_FIELD]'

    if any(partial in key_lower for partial in PARTIALLY_REDACTED_FIELDS):
        if isinstance(value, str):
            return partially_redact(value)
        if isinstance(value, (list, tuple)):
            return [partially_redact(item) if isinstance(item, str) else item for item in value]
        return value

    if isinstance(value, dict):
        return sanitize_dict(value, depth + 1)

    if isinstance(value, list):
        return [
            sanitize_dict(item, depth + 1) if isinstance(item, dict)
            else sanitize_string(item) if isinstance(item, str)
            else item
            for item in value
        ]

    if isinstance(value, str):
        return sanitize_string(value)

    return value


def sanitize_dict(data: Dict[str, Any], depth: int = 0) -> Dict[str, Any]:
    """
    Recursively sanitize a dictionary.

    Args:
        data: Dictionary to sanitize
        depth: Current recursion depth (prevents infinite loops)

    Returns:
        Sanitized dictionary
    """
    if depth > 10:
        return {"[DEEP_RECURSION]": "..."}

    if not isinstance(data, dict):
        return data

    return {key: _sanitize_value(str(key), value, depth) for key, value in data.items()}


def secure_log_processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Structlog processor that sanitizes log events.

    Runs on every event, so identifiers passed by code that bypasses
    SecureLogger are redacted as well.
    """
    event = event_dict.pop('event', None)
    sanitized = sanitize_dict(dict(event_dict))
    if event is not None:
        sanitized['event'] = sanitize_string(str(event))
    return sanitized


def add_component_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Tag events with the subsystem that produced them."""
    logger_name = str(event_dict.get('logger', ''))
    if 'clustering' in logger_name:
        event_dict['component'] = 'clustering'
    elif 'config' in logger_name:
        event_dict['component'] = 'configuration'
    elif 'main' in logger_name:
        event_dict['component'] = 'cli'

    return event_dict


def configure_logging(log_level: str = "INFO", json_format: bool = False) -> None:
    """
    Configure secure logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_format: Whether to use JSON format for logs
    """
    import logging

    logging.basicConfig(format="%(message)s", level=log_level.upper())

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_component_context,
        secure_log_processor,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class SecureLogger:
    """
    Wrapper around structlog that sanitizes keyword arguments before they
    reach any processor.
    """

    def __init__(self, name: str):
        self.logger = structlog.get_logger(name)
        self.name = name

    def debug(self, event: str, **kwargs):
        self.logger.debug(event, **self._sanitize_kwargs(kwargs))

    def info(self, event: str, **kwargs):
        self.logger.info(event, **self._sanitize_kwargs(kwargs))

    def warning(self, event: str, **kwargs):
        self.logger.warning(event, **self._sanitize_kwargs(kwargs))

    def error(self, event: str, **kwargs):
        self.logger.error(event, **self._sanitize_kwargs(kwargs))

    def critical(self, event: str, **kwargs):
        self.logger.critical(event, **self._sanitize_kwargs(kwargs))

    def _sanitize_kwargs(self, kwargs: Dict[str, Any]) -> Dict[str, Any]:
        return sanitize_dict(kwargs)


def get_secure_logger(name: str) -> SecureLogger:
    """Get a secure logger instance."""
    return SecureLogger(name)
