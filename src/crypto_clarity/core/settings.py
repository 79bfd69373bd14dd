"""Application settings and configuration.

This module defines all configuration options for the Crypto Clarity service.
Settings are loaded from environment variables with sensible defaults.
"""

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PremiumPolicy(str, Enum):
    """How a caller earns the premium quota ceiling."""

    EMAIL_PRESENCE = "email_presence"  # any supplied email counts as premium
    STORED_FLAG = "stored_flag"  # the user record must carry is_premium


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Crypto Clarity", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./clarity.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Entitlement and quota
    admin_emails: list[str] = Field(default_factory=list, alias="ADMIN_EMAILS")
    free_daily_limit: int = Field(default=5, alias="FREE_DAILY_LIMIT")
    premium_daily_limit: int = Field(default=1000, alias="PREMIUM_DAILY_LIMIT")
    max_bonus_prompts: int = Field(default=5, alias="MAX_BONUS_PROMPTS")
    premium_policy: PremiumPolicy = Field(
        default=PremiumPolicy.EMAIL_PRESENCE,
        alias="PREMIUM_POLICY",
    )

    # Language model
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o", alias="OPENAI_MODEL")
    openai_temperature: float = Field(default=0.4, alias="OPENAI_TEMPERATURE")
    model_timeout_seconds: float = Field(default=45.0, alias="MODEL_TIMEOUT_SECONDS")

    # Blockchain data lookups
    etherscan_api_key: str | None = Field(default=None, alias="ETHERSCAN_API_KEY")
    etherscan_api_url: str = Field(
        default="https://api.etherscan.io/api",
        alias="ETHERSCAN_API_URL",
    )
    etherscan_timeout_seconds: float = Field(default=10.0, alias="ETHERSCAN_TIMEOUT_SECONDS")

    # Audit trail
    scan_log_onchain_max_chars: int = Field(default=5000, alias="SCAN_LOG_ONCHAIN_MAX_CHARS")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "OPTIONS"],
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
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()
