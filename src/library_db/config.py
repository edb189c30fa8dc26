"""Configuration management for the library database.

Settings are read from the environment (``LIBRARY_DB_`` prefix) or a local
``.env`` file, and validated with Pydantic v2:
1. Storage - where the database lives and which engine to talk to
2. Circulation - default loan period for borrows without a due date
3. Logging - level and debug switches
4. Observability - local Logfire tracing
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LibraryConfig(BaseSettings):
    """Library database configuration.

    Every field can be overridden with an environment variable named
    ``LIBRARY_DB_<FIELD>``, e.g. ``LIBRARY_DB_DATABASE_URL``.
    """

    model_config = SettingsConfigDict(
        # Use LIBRARY_DB_ prefix for all env vars
        env_prefix="LIBRARY_DB_",
        # Load from .env file if present
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Database Configuration ===

    database_path: Path = Field(
        default=Path("data/library.db"),
        description="SQLite database file path (used when database_url is unset)",
    )

    database_url: str | None = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides database_path (e.g. postgresql://...)",
    )

    echo_sql: bool = Field(
        default=False,
        description="Echo every SQL statement through the sqlalchemy.engine logger",
    )

    # === Circulation Configuration ===

    default_loan_days: int = Field(
        default=14,
        description="Loan period applied when a borrow is recorded without a due date",
        ge=1,
        le=365,
    )

    # === Logging Configuration ===

    debug: bool = Field(
        default=False,
        description="Enable debug logging",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    # === Observability Configuration ===

    observability_enabled: bool = Field(
        default=True,
        description="Configure Logfire spans around circulation operations",
    )

    observability_console: bool = Field(
        default=False,
        description="Print Logfire spans to the console",
    )

    send_to_logfire: bool = Field(
        default=False,
        description="Ship spans to the Logfire backend (requires LOGFIRE_TOKEN)",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept lower-case level names from the environment."""
        return v.upper() if isinstance(v, str) else v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str | None) -> str | None:
        """Reject URLs without a dialect part."""
        if v is not None and "://" not in v:
            raise ValueError("database_url must be a SQLAlchemy URL like 'sqlite:///library.db'")
        return v

    # === Computed Properties ===

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug or self.log_level == "DEBUG"

    def get_database_url(self) -> str:
        """Get the SQLAlchemy database URL.

        An explicit ``database_url`` wins; otherwise the SQLite file at
        ``database_path`` is used, with its parent directory created on demand.
        """
        if self.database_url:
            return self.database_url

        db_path = self.database_path
        if not db_path.is_absolute():
            db_path = Path.cwd() / db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{db_path}"


# === Global Configuration Instance ===


class _ConfigStore:
    """Internal storage for configuration singleton."""

    _instance: LibraryConfig | None = None


def get_config() -> LibraryConfig:
    """Get or create the global configuration instance."""
    if _ConfigStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ConfigStore._instance = LibraryConfig()  # type: ignore[reportPrivateUsage]
    return _ConfigStore._instance  # type: ignore[reportPrivateUsage]


def reset_config() -> None:
    """Reset configuration (useful for testing)."""
    _ConfigStore._instance = None  # type: ignore[reportPrivateUsage]
