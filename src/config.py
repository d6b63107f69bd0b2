"""Configuration loading and validation.

This module is responsible for:

- Loading `.env` into the process environment (without overriding existing vars).
- Converting environment variables into a strongly-typed Pydantic model.
- Validating required fields and providing actionable error messages.
"""

import os

import dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator


def _get_required_env(name: str) -> str:
    """Read a required env var or raise a helpful error."""
    value = os.getenv(name, "").strip()
    if not value:
        raise ValueError(f"{name} is required. Please set it in your .env file.")
    if value.startswith("your_") and value.endswith("_here"):
        raise ValueError(f"{name} is required. Please replace the placeholder value in your .env file.")
    return value


def _get_optional_env(name: str) -> str | None:
    """Read an optional env var; blank values count as unset."""
    value = os.getenv(name, "").strip()
    return value or None


def _get_env_bool(name: str, default: bool) -> bool:
    """Read a boolean env var with a default."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    normalized = raw.strip().lower()
    if normalized in {"true", "1", "yes", "y", "on"}:
        return True
    if normalized in {"false", "0", "no", "n", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean (true/false). Got: {raw!r}")


class SinkConfig(BaseModel):
    """Configuration for the buffered trace sink."""

    # Assignments are validated too, since `table_name` may change at runtime.
    model_config = ConfigDict(validate_assignment=True)

    connection_string: str = Field(..., description="Backing-store target (DuckDB database path)")
    table_name: str | None = Field(default=None, description="Destination table, read on every flush")
    isolated_flush_lock: bool = Field(
        default=False,
        description="Give the sink its own flush lock instead of the process-wide one",
    )

    @field_validator("connection_string")
    def validate_connection_string(cls, v: str) -> str:
        """Validate connection string is set (not empty/placeholder)."""
        if not v or not v.strip() or v == "your_connection_string_here":
            raise ValueError("TRACESINK_CONNECTION_STRING is required. Please set it in your .env file.")
        return v

    @field_validator("table_name")
    def validate_table_name(cls, v: str | None) -> str | None:
        """Reject blank table names; None means "not configured yet"."""
        if v is not None and not v.strip():
            raise ValueError("TRACESINK_TABLE_NAME must not be blank.")
        return v


def load_config() -> SinkConfig:
    """Load sink configuration from environment variables.

    Notes:
    - Calls `dotenv.load_dotenv()` so local `.env` values are visible to the process.
    - Raises `ValueError` with actionable messages when required configuration is
      missing or still contains placeholder values.
    """
    dotenv.load_dotenv()

    return SinkConfig(
        connection_string=_get_required_env("TRACESINK_CONNECTION_STRING"),
        table_name=_get_optional_env("TRACESINK_TABLE_NAME"),
        isolated_flush_lock=_get_env_bool("TRACESINK_ISOLATED_FLUSH_LOCK", False),
    )
