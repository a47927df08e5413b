"""
SharedCache Configuration

Configuration management with environment variable support.
Connection parameters for the shared document store and the names of the
collections the cache and the key ring live in.
"""

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
load_dotenv()


def _validate_name(field_name: str, v: str) -> str:
    if not v:
        raise ValueError(f"{field_name} cannot be empty")
    if any(char.isspace() for char in v):
        raise ValueError(f"{field_name} cannot contain whitespace")
    if ":" in v:
        raise ValueError(f"{field_name} cannot contain ':'")
    return v


class Settings(BaseSettings):
    """Shared cache settings with validation and secure defaults."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    # Environment settings
    ENVIRONMENT: str = Field(
        default="development", description="Application environment"
    )

    # Document store connection
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0", description="Redis connection URL"
    )
    REDIS_MAX_CONNECTIONS: int = Field(
        default=10, ge=1, le=100, description="Redis connection pool size"
    )
    REDIS_CONNECTION_TIMEOUT: float = Field(
        default=5.0, gt=0, le=120, description="Socket connect timeout in seconds"
    )
    REDIS_OPERATION_TIMEOUT: float = Field(
        default=5.0, gt=0, le=120, description="Socket operation timeout in seconds"
    )

    # Logical database and collections
    CACHE_DATABASE: str = Field(
        default="sharedcache", description="Logical database name (key namespace)"
    )
    CACHE_COLLECTION: str = Field(
        default="cache_entries", description="Collection holding cache entries"
    )
    KEY_RING_COLLECTION: str = Field(
        default="data_protection_keys",
        description="Collection holding key-ring elements",
    )
    CACHE_ENFORCE_EXPIRATION: bool = Field(
        default=False,
        description="Treat entries past their deadline as missing on read",
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_JSON: bool = Field(default=False, description="Render logs as JSON")

    @field_validator("REDIS_URL")
    @classmethod
    def validate_redis_url(cls, v):
        """Validate Redis URL scheme."""
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("REDIS_URL must be a redis://, rediss:// or unix:// URL")
        return v

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment value."""
        allowed = ["development", "test", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"ENVIRONMENT must be one of: {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of: {allowed}")
        return v.upper()

    @field_validator("CACHE_DATABASE")
    @classmethod
    def validate_database(cls, v):
        return _validate_name("CACHE_DATABASE", v)

    @field_validator("CACHE_COLLECTION")
    @classmethod
    def validate_cache_collection(cls, v):
        return _validate_name("CACHE_COLLECTION", v)

    @field_validator("KEY_RING_COLLECTION")
    @classmethod
    def validate_key_ring_collection(cls, v):
        return _validate_name("KEY_RING_COLLECTION", v)

    @model_validator(mode="after")
    def validate_distinct_collections(self) -> "Settings":
        """Cache entries and key-ring elements never share a collection."""
        if self.CACHE_COLLECTION == self.KEY_RING_COLLECTION:
            raise ValueError(
                "CACHE_COLLECTION and KEY_RING_COLLECTION must name different collections"
            )
        return self


@lru_cache()
def get_settings(env_file: Optional[str] = None) -> Settings:
    """Get cached settings instance."""
    if env_file:
        return Settings(_env_file=env_file)
    return Settings()
