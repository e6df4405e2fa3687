"""
FastAPI application configuration using Pydantic Settings.

Provides centralized configuration for:
- Document store connection (MongoDB)
- Authentication (JWT settings, password hashing)
- API settings (CORS, security headers)
- Pagination bounds
- Logging and monitoring

All settings support environment variable overrides and .env file loading.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables with the
    prefix "LEDGER_API_" (e.g., LEDGER_API_MONGODB_URL).

    Environment variables are loaded from:
    1. System environment
    2. .env file in the current directory
    3. Default values defined below
    """

    # =========================================================================
    # API Settings
    # =========================================================================

    app_name: str = Field(
        default="Ledger History API",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="API version"
    )
    api_prefix: str = Field(
        default="/api/v1",
        description="API URL prefix"
    )

    debug: bool = Field(
        default=False,
        description="Debug mode - enables verbose logging and error traces"
    )
    environment: str = Field(
        default="production",
        description="Environment: development|staging|production"
    )

    host: str = Field(
        default="0.0.0.0",
        description="API bind host"
    )
    port: int = Field(
        default=8000,
        description="API bind port",
        gt=0,
        lt=65536
    )

    # =========================================================================
    # Document Store Settings (MongoDB)
    # =========================================================================

    mongodb_url: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URL"
    )
    mongodb_database: str = Field(
        default="trading",
        description="Database holding users, deposits and transactions"
    )
    mongodb_connect_timeout_ms: int = Field(
        default=30000,
        description="Connection timeout (milliseconds)",
        gt=0
    )
    mongodb_socket_timeout_ms: int = Field(
        default=45000,
        description="Socket timeout (milliseconds)",
        gt=0
    )
    mongodb_max_pool_size: int = Field(
        default=50,
        description="Maximum connections in the client pool",
        gt=0,
        le=500
    )
    mongodb_min_pool_size: int = Field(
        default=10,
        description="Minimum connections kept in the client pool",
        ge=0,
        le=500
    )
    mongodb_retry_writes: bool = Field(
        default=True,
        description="Let the driver retry writes once on transient errors"
    )
    mongodb_retry_reads: bool = Field(
        default=True,
        description="Let the driver retry reads once on transient errors"
    )

    users_collection: str = Field(
        default="users",
        description="Collection holding user accounts"
    )
    deposits_collection: str = Field(
        default="deposits",
        description="Collection holding per-user deposit requests"
    )
    deposits_owner_field: str = Field(
        default="user",
        description="Field of a deposit document that references its owner"
    )
    transactions_collection: str = Field(
        default="transactions",
        description="Collection holding deposit and withdrawal transactions"
    )
    created_at_field: str = Field(
        default="createdAt",
        description="Creation timestamp field used for most-recent-first ordering"
    )

    # =========================================================================
    # JWT Authentication Settings
    # =========================================================================

    jwt_secret_key: str = Field(
        default="change-this-secret-key-in-production-use-env-var-minimum-32-chars",
        description="Secret key for JWT token signing (MUST be changed in production)",
        min_length=32
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm (HS256, HS384, HS512)"
    )
    jwt_access_token_expire_minutes: int = Field(
        default=7 * 24 * 60,
        description="Access token expiration time in minutes",
        gt=0,
        le=30 * 24 * 60  # Max 30 days
    )

    # =========================================================================
    # Password Hashing Settings
    # =========================================================================

    password_bcrypt_rounds: int = Field(
        default=10,
        description="BCrypt hash rounds (higher = slower but more secure)",
        ge=4,
        le=14
    )

    # =========================================================================
    # CORS Settings
    # =========================================================================

    cors_enabled: bool = Field(
        default=True,
        description="Enable CORS middleware"
    )
    cors_origins: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:3001",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:3001",
        ],
        description="Allowed CORS origins"
    )
    cors_allow_credentials: bool = Field(
        default=True,
        description="Allow credentials (cookies, authorization headers) in CORS"
    )
    cors_allow_methods: List[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        description="Allowed HTTP methods"
    )
    cors_allow_headers: List[str] = Field(
        default=["*"],
        description="Allowed HTTP headers"
    )

    # =========================================================================
    # Security Settings
    # =========================================================================

    security_require_https: bool = Field(
        default=False,
        description="Require HTTPS for all requests (enable in production)"
    )
    security_headers_enabled: bool = Field(
        default=True,
        description="Enable security headers (X-Frame-Options, etc.)"
    )
    security_hsts_max_age: int = Field(
        default=31536000,  # 1 year
        description="HSTS max age (seconds)"
    )

    # =========================================================================
    # Pagination Settings
    # =========================================================================

    pagination_default_limit: int = Field(
        default=10,
        description="Page size used when the caller supplies none",
        gt=0,
        le=1000
    )
    pagination_max_limit: int = Field(
        default=100,
        description="Maximum page size for caller-scoped history",
        gt=0,
        le=1000
    )
    pagination_admin_max_limit: int = Field(
        default=50,
        description="Maximum page size for admin listings",
        gt=0,
        le=1000
    )

    # =========================================================================
    # Monitoring and Logging
    # =========================================================================

    metrics_enabled: bool = Field(
        default=True,
        description="Enable Prometheus metrics endpoint"
    )

    log_level: str = Field(
        default="INFO",
        description="Log level: DEBUG|INFO|WARNING|ERROR|CRITICAL"
    )
    log_format: str = Field(
        default="json",
        description="Log format: json|text"
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of {allowed}, got: {v}")
        return v_upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed = ["development", "staging", "production", "test"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of {allowed}, got: {v}")
        return v_lower

    @field_validator("cors_origins")
    @classmethod
    def validate_cors_origins(cls, v: List[str]) -> List[str]:
        """Validate CORS origins are not empty."""
        if not v:
            return ["*"]
        return v

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        """Only symmetric algorithms are supported with a shared secret."""
        allowed = ["HS256", "HS384", "HS512"]
        if v not in allowed:
            raise ValueError(f"jwt_algorithm must be one of {allowed}, got: {v}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        allowed = ["json", "text"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"log_format must be one of {allowed}, got: {v}")
        return v_lower

    @model_validator(mode="after")
    def validate_pagination_bounds(self) -> "Settings":
        """Default page size must fit under both maximums."""
        if self.pagination_default_limit > self.pagination_max_limit:
            raise ValueError("pagination_default_limit must not exceed pagination_max_limit")
        if self.pagination_default_limit > self.pagination_admin_max_limit:
            raise ValueError("pagination_default_limit must not exceed pagination_admin_max_limit")
        if self.mongodb_min_pool_size > self.mongodb_max_pool_size:
            raise ValueError("mongodb_min_pool_size must not exceed mongodb_max_pool_size")
        return self

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def mongodb_url_redacted(self) -> str:
        """Connection URL with credentials stripped, safe for logs."""
        scheme, sep, rest = self.mongodb_url.partition("://")
        if not sep:
            return self.mongodb_url
        if "@" in rest:
            rest = rest.split("@", 1)[1]
        return f"{scheme}://{rest}"

    # =========================================================================
    # Model Config
    # =========================================================================

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_API_",  # Environment variable prefix
        env_file=".env",            # Load from .env file
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",             # Ignore extra environment variables
        validate_default=True,      # Validate default values
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once and shared
    across the application. Settings are loaded from:
    1. Environment variables with LEDGER_API_ prefix
    2. .env file in the current directory
    3. Default values

    Returns:
        Settings: Cached settings instance

    Example:
        >>> from ledger_api.src.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.mongodb_database)
        trading
    """
    return Settings()


def clear_settings_cache():
    """
    Clear the settings cache.

    Useful for testing when you need to reload settings with different
    environment variables.
    """
    get_settings.cache_clear()
