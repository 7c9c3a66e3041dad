"""Environment-driven configuration.

Everything here comes from environment variables (or ``.env``). The reference
format is deliberately absent: admins edit it at runtime, so it lives in the
``global_settings`` table and is handed to the reference generator explicitly.
"""

from enum import Enum
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ConfigurationError(Exception):
    """Configuration is not acceptable for the current environment."""


_DEFAULT_JWT_SECRET = "dev-insecure-key-change-me"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """OrgArchive settings.

    Development defaults favour a zero-setup start: SQLite file database,
    authentication off (every request is an admin), public category listing
    on. ``validate_production_config`` refuses those defaults in production.
    """

    environment: Environment = Field(default=Environment.DEVELOPMENT)

    # -- Database --
    database_url: str = Field(default="sqlite:///./orgarchive.db")
    db_pool_size: int = Field(default=5, description="PostgreSQL only")
    db_max_overflow: int = Field(default=10, description="PostgreSQL only")
    db_pool_timeout: int = Field(default=30, description="Seconds to wait for a connection")
    db_pool_recycle: int = Field(default=1800, description="Seconds before a connection is recycled")

    # -- HTTP --
    cors_allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed origins",
    )
    rate_limit_per_minute: int = Field(default=120, description="Per client; 0 disables")

    # -- Authentication and access --
    auth_enabled: bool = Field(default=False, description="False: every request is an anonymous admin")
    public_read: bool = Field(
        default=True,
        description="Unauthenticated visitors see the whole category tree, display only",
    )
    jwt_secret_key: str = Field(default=_DEFAULT_JWT_SECRET)
    jwt_algorithm: str = Field(default="HS256")
    jwt_expiry_hours: int = Field(default=12)

    # -- Housekeeping --
    audit_retention_days: int = Field(default=365, description="0 keeps audit entries forever")
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", description="'json' or 'text'")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v

    def get_cors_origins(self) -> List[str]:
        origins = [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]
        if "*" in origins:
            raise ValueError("Wildcard CORS origin is not allowed; list origins explicitly")
        return origins

    def uses_default_secret(self) -> bool:
        return self.jwt_secret_key == _DEFAULT_JWT_SECRET

    def production_problems(self) -> List[str]:
        """Settings that are unsafe outside development."""
        problems = []
        if self.uses_default_secret():
            problems.append("JWT_SECRET_KEY is the built-in default (generate one: openssl rand -hex 32)")
        if not self.auth_enabled:
            problems.append("AUTH_ENABLED is false, every request would act as an admin")
        local = [o for o in self.get_cors_origins() if "localhost" in o or "127.0.0.1" in o]
        if local:
            problems.append(f"CORS allows local origins: {', '.join(local)}")
        return problems

    def validate_production_config(self) -> None:
        """Raise ConfigurationError in production when any problem is found.

        Development only gets warnings, logged by main.py.
        """
        problems = self.production_problems()
        if problems and self.environment == Environment.PRODUCTION:
            raise ConfigurationError(
                "Refusing to start with insecure production configuration:\n  - "
                + "\n  - ".join(problems)
            )


settings = Settings()
