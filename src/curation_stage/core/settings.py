"""Application settings and configuration.

This module defines all configuration options for the Curation Stage application.
Settings are loaded from environment variables with sensible defaults.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    This class defines all configuration options for the Curation Stage application.
    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Curation Stage", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and authentication
    secret_key: str = Field(default="change-me", alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration
    database_url: str = Field(default="sqlite:///./curation.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Asset storage
    upload_root: Path = Field(default=Path("./public/uploads"), alias="UPLOAD_ROOT")
    public_base_url: str = Field(default="http://localhost:8000", alias="PUBLIC_BASE_URL")
    asset_max_upload_bytes: int = Field(default=10 * 1024 * 1024, alias="ASSET_MAX_UPLOAD_BYTES")

    # Transcoding constraints applied to every promoted image
    asset_max_width: int = Field(default=1200, alias="ASSET_MAX_WIDTH")
    asset_max_height: int = Field(default=1200, alias="ASSET_MAX_HEIGHT")
    asset_quality: int = Field(default=80, alias="ASSET_QUALITY")
    asset_transcode_timeout_seconds: float = Field(
        default=30.0,
        alias="ASSET_TRANSCODE_TIMEOUT_SECONDS",
    )
    asset_transcode_workers: int = Field(default=2, alias="ASSET_TRANSCODE_WORKERS")

    # Deletion strategy: "auto" picks queue-and-retry on Windows, immediate elsewhere
    asset_delete_strategy: str = Field(default="auto", alias="ASSET_DELETE_STRATEGY")
    asset_retry_base_seconds: float = Field(default=30.0, alias="ASSET_RETRY_BASE_SECONDS")
    asset_retry_slow_base_seconds: float = Field(
        default=300.0,
        alias="ASSET_RETRY_SLOW_BASE_SECONDS",
    )
    asset_retry_max_delay_seconds: float = Field(
        default=1800.0,
        alias="ASSET_RETRY_MAX_DELAY_SECONDS",
    )
    asset_slow_format_max_attempts: int = Field(
        default=3,
        alias="ASSET_SLOW_FORMAT_MAX_ATTEMPTS",
    )

    # Background maintenance
    asset_retry_interval_seconds: float = Field(
        default=300.0,
        alias="ASSET_RETRY_INTERVAL_SECONDS",
    )
    asset_sweep_interval_seconds: float = Field(
        default=1800.0,
        alias="ASSET_SWEEP_INTERVAL_SECONDS",
    )
    asset_orphan_max_age_seconds: float = Field(
        default=300.0,
        alias="ASSET_ORPHAN_MAX_AGE_SECONDS",
    )
    asset_sweep_on_startup: bool = Field(default=True, alias="ASSET_SWEEP_ON_STARTUP")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.

        Returns:
            Database URL compatible with synchronous database drivers
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides.

        Returns:
            The active database URL (test database if in testing mode, otherwise production)
        """
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def staging_dir(self) -> Path:
        """Directory holding uploads that have not been promoted yet."""
        return self.upload_root / "temp"


settings = Settings()
