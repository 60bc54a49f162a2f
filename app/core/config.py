# app/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import computed_field
from typing import Literal, Optional


class Settings(BaseSettings):
    # -------------------------------------------------
    # Project
    # -------------------------------------------------
    APP_NAME: str = "CashCached Auth"
    DEBUG: bool = False
    ENVIRONMENT: str = "local"
    LOG_LEVEL: str = "INFO"

    # -------------------------------------------------
    # Database Settings (credential store)
    # -------------------------------------------------
    DATABASE_HOST: str = "localhost"
    DATABASE_PORT: int = 5432
    DATABASE_USER: str = "postgres"
    DATABASE_PASSWORD: str = "postgres"
    DATABASE_NAME: str = "cashcached"
    DATABASE_POOL_MIN_SIZE: int = 2
    DATABASE_POOL_SIZE: int = 10

    # -------------------------------------------------
    # Redis / Cache
    # -------------------------------------------------
    REDIS_URL: str = "redis://localhost:6379/0"
    # "memory" keeps sessions and OTPs in-process (single worker dev / tests)
    CACHE_BACKEND: Literal["redis", "memory"] = "redis"

    # -------------------------------------------------
    # JWT / Auth
    # -------------------------------------------------
    JWT_SECRET_KEY: str = "CHANGE_ME_SUPER_SECRET"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_SECONDS: int = 3600

    # Optional “pepper” for password hashing (extra static secret)
    PASSWORD_PEPPER: str = "CHANGE_ME_TO_A_RANDOM_LONG_STRING"
    BCRYPT_ROUNDS: int = 12

    # -------------------------------------------------
    # Sessions
    # -------------------------------------------------
    SESSION_TIMEOUT_SECONDS: int = 3600
    SESSION_IDLE_TIMEOUT_SECONDS: int = 900
    SESSION_LOCK_TTL_SECONDS: int = 5
    SESSION_COOKIE_NAME: str = "CASHCACHED_SESSION"
    SESSION_COOKIE_SECURE: bool = True
    SESSION_COOKIE_MAX_AGE: int = 3600

    # -------------------------------------------------
    # One-time passwords / login history
    # -------------------------------------------------
    OTP_TTL_SECONDS: int = 300
    LOGIN_HISTORY_CAPACITY: int = 20

    # -------------------------------------------------
    # Email Settings (adjust or override in .env)
    # -------------------------------------------------
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: Optional[int] = None
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    EMAIL_FROM: str = "no-reply@cashcached.local"

    # -------------------------------------------------
    # Pydantic Settings
    # -------------------------------------------------
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",        # ignore unknown env vars
        case_sensitive=False,
    )

    # -------------------------------------------------
    # Computed / convenience properties
    # -------------------------------------------------
    @computed_field
    @property
    def DATABASE_URL(self) -> str:  # type: ignore[override]
        """
        Convenience DSN string for libraries that want a URL.
        """
        return (
            f"postgresql://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )


settings = Settings()
