"""
Connection settings.

Values can be overridden through environment variables prefixed with
`DOCSTORE_` (e.g. `DOCSTORE_CONNECTION_STRING`) or a `.env` file.
"""
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DbSettings(BaseSettings):
    """Document-store connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="DOCSTORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    connection_string: str = "mongodb://localhost:27017"
    database: Optional[str] = None

    # Text indexes
    default_language: str = "spanish"
    text_index_version: int = 3

    # Return timezone-aware datetimes from the driver
    tz_aware: bool = True

    @field_validator("connection_string")
    @classmethod
    def validate_connection_string(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("connection_string must not be empty")
        return value
