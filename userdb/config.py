"""
Database Configuration Management

This module provides configuration management for the users table
validation suite, integrating with environment variables and providing
validation.
"""

import re
from pathlib import Path
from typing import Optional, Dict, Any
from urllib.parse import quote

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
SCHEME_PATTERN = re.compile(r"^postgres(?:ql)?(?:\+\w+)?://")


class DatabaseConfig(BaseSettings):
    """
    Database configuration with validation and environment variable support.

    The connection is taken from DATABASE_URL when present, otherwise it is
    assembled from the discrete DB_* settings. All settings can be
    overridden via environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Core Database Connection
    database_url: Optional[str] = Field(None, description="PostgreSQL connection string")
    db_user: Optional[str] = Field(None, description="Database username")
    db_password: Optional[str] = Field(None, description="Database password")
    db_host: Optional[str] = Field(None, description="Database host")
    db_port: int = Field(5432, description="Database port")
    db_name: Optional[str] = Field(None, description="Database name")

    # Table under validation
    db_table: str = Field("users", description="Table whose schema and constraints are validated")
    db_schema: str = Field("public", description="Schema that holds the table")

    # Engine Settings
    db_echo: bool = Field(False, description="Enable SQL query logging")

    # Timeout Settings
    db_connect_timeout: int = Field(30, description="Connection timeout in seconds")
    db_query_timeout: int = Field(60, description="Query timeout in seconds")

    @field_validator('db_port')
    @classmethod
    def validate_port(cls, v):
        """Validate database port is in valid range."""
        if not (1 <= v <= 65535):
            raise ValueError('Database port must be between 1 and 65535')
        return v

    @field_validator('db_connect_timeout', 'db_query_timeout')
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError('Timeouts must be positive')
        return v

    @field_validator('db_table', 'db_schema')
    @classmethod
    def validate_identifier(cls, v):
        """Table and schema names are interpolated into SQL, keep them plain."""
        if not IDENTIFIER_PATTERN.match(v):
            raise ValueError(f'Invalid SQL identifier: {v!r}')
        return v

    @property
    def is_configured(self) -> bool:
        """True when there is enough information to open a connection."""
        if self.database_url:
            return True
        return bool(self.db_host and self.db_user and self.db_name)

    @property
    def dsn(self) -> str:
        """
        Plain PostgreSQL URL for direct asyncpg usage.

        Returns:
            str: postgresql:// connection URL
        """
        if self.database_url:
            # Drop any SQLAlchemy driver suffix, asyncpg wants the bare scheme
            return SCHEME_PATTERN.sub("postgresql://", self.database_url, count=1)

        if not self.is_configured:
            raise RuntimeError(
                "Database connection is not configured: set DATABASE_URL "
                "or DB_HOST, DB_USER and DB_NAME"
            )

        credentials = quote(self.db_user, safe="")
        if self.db_password:
            credentials += ":" + quote(self.db_password, safe="")
        return f"postgresql://{credentials}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def async_database_url(self) -> str:
        """
        Generate the SQLAlchemy async database URL.

        Returns:
            str: PostgreSQL connection URL using the asyncpg dialect
        """
        return SCHEME_PATTERN.sub("postgresql+asyncpg://", self.dsn, count=1)

    @property
    def qualified_table(self) -> str:
        return f"{self.db_schema}.{self.db_table}"

    def get_connection_params(self) -> Dict[str, Any]:
        """
        Get connection parameters for direct asyncpg usage.

        Returns:
            Dict[str, Any]: Connection parameters
        """
        return {
            "dsn": self.dsn,
            "timeout": self.db_connect_timeout,
            "command_timeout": self.db_query_timeout,
        }

    @classmethod
    def from_env_file(cls, env_file_path: Optional[Path] = None) -> "DatabaseConfig":
        """
        Create configuration from environment file.

        Args:
            env_file_path: Optional path to .env file. Defaults to ./.env

        Returns:
            DatabaseConfig: Configured instance
        """
        if env_file_path is None:
            env_file_path = Path.cwd() / ".env"

        if env_file_path.exists():
            return cls(_env_file=str(env_file_path))
        else:
            # Fall back to environment variables only
            return cls(_env_file=None)


# Global configuration instance
_config: Optional[DatabaseConfig] = None


def get_database_config(env_file_path: Optional[Path] = None) -> DatabaseConfig:
    """
    Get the global database configuration instance.

    Args:
        env_file_path: Optional path to environment file

    Returns:
        DatabaseConfig: Global configuration instance
    """
    global _config
    if _config is None:
        _config = DatabaseConfig.from_env_file(env_file_path)
    return _config


def reset_database_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _config
    _config = None


def unconfigured_reason(env_file_path: Optional[Path] = None) -> Optional[str]:
    """
    Explain why no database connection can be made, or None when one can.

    Malformed settings are reported instead of raised, so callers that only
    need to decide whether to skip live work keep running.
    """
    try:
        config = DatabaseConfig.from_env_file(env_file_path)
    except ValidationError as e:
        fields = ", ".join(str(error["loc"][0]) for error in e.errors() if error["loc"])
        return f"invalid database settings: {fields or e}"
    if not config.is_configured:
        return "requires DATABASE_URL or DB_HOST/DB_USER/DB_NAME"
    return None
