"""
Specific exception classes for SybilScope.

Provides detailed error types for the failure scenarios of the clustering
engine, enabling hosts to tell bad configuration apart from bad input.
"""

from typing import Any, Dict, Optional


class SybilScopeError(Exception):
    """Base exception for all SybilScope errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


# =============================================================================
# Clustering Related Errors
# =============================================================================

class ClusteringError(SybilScopeError):
    """Base class for clustering-related errors."""
    pass


class InsufficientDataError(ClusteringError):
    """Not enough input vectors for the requested clustering."""

    def __init__(self, data_type: str, required_amount: Optional[int] = None,
                 available_amount: Optional[int] = None):
        self.data_type = data_type
        self.required_amount = required_amount
        self.available_amount = available_amount

        details: Dict[str, Any] = {'data_type': data_type}
        if required_amount is not None:
            details['required_amount'] = required_amount
        if available_amount is not None:
            details['available_amount'] = available_amount

        message = f"Insufficient {data_type} for clustering"
        if required_amount is not None and available_amount is not None:
            message += f" (need {required_amount}, got {available_amount})"
        super().__init__(message, details)


class UnknownAlgorithmError(ClusteringError):
    """Requested clustering algorithm has no implementation."""

    def __init__(self, algorithm: Any):
        self.algorithm = algorithm
        super().__init__(f"Unknown clustering algorithm: {algorithm}",
                         {'algorithm': str(algorithm)})


# =============================================================================
# Configuration Related Errors
# =============================================================================

class ConfigurationError(SybilScopeError):
    """Base class for configuration-related errors."""
    pass


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid."""

    def __init__(self, config_key: str, config_value: Any,
                 expected_format: Optional[str] = None,
                 failures: Optional[list] = None):
        self.config_key = config_key
        self.config_value = config_value
        self.expected_format = expected_format
        self.failures = failures or []

        message = f"Invalid configuration value for '{config_key}': {config_value}"
        if expected_format:
            message += f" (expected format: {expected_format})"

        details: Dict[str, Any] = {
            'config_key': config_key,
            'config_value': config_value
        }
        if expected_format:
            details['expected_format'] = expected_format
        if self.failures:
            details['failures'] = self.failures

        super().__init__(message, details)


# =============================================================================
# Validation Related Errors
# =============================================================================

class ValidationError(SybilScopeError):
    """Input validation failed."""

    def __init__(self, field_name: str, field_value: Any, reason: str):
        self.field_name = field_name
        self.field_value = field_value
        self.reason = reason

        message = f"Validation failed for '{field_name}': {reason}"
        details = {
            'field_name': field_name,
            'field_value': field_value,
            'reason': reason
        }

        super().__init__(message, details)


class WalletAddressValidationError(ValidationError):
    """Wallet address validation failed."""

    def __init__(self, address: Any, reason: str = "Invalid format"):
        super().__init__('wallet_address', address, reason)
