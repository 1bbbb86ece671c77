"""
Application configuration for SybilScope.

Settings come from environment variables and an optional .env file via
pydantic-settings. Clustering parameters live in their own nested model
(``sybilscope.clustering.config``) so the engine can be configured without
the application layer; here they hang off ``Settings.clustering``.
"""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .clustering.config import ClusteringSettings

load_dotenv()


class Settings(BaseSettings):
    """
    Top-level settings.

    Environment variables win over .env entries. Nested clustering values
    use a double underscore, e.g. CLUSTERING__NUM_CLUSTERS=4.

    Usage:
        from sybilscope.config import get_settings
        settings = get_settings()
        print(settings.clustering.num_clusters)
    """

    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR"
    )
    log_json_format: bool = Field(
        default=False,
        description="Emit logs as JSON lines instead of console output"
    )

    clustering: ClusteringSettings = Field(default_factory=ClusteringSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance.

    Tests reset it with ``get_settings.cache_clear()``.
    """
    return Settings()
