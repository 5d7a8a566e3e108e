"""
Configuration management for the Leave Engine
"""
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import Optional, List, Tuple


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Required settings
    DATABASE_URL: str = Field(..., description="SQLAlchemy database URL")
    JWT_SECRET_KEY: str = Field(..., description="Secret used to verify identity-provider tokens")

    # Optional settings with defaults
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    JWT_EXPIRE_MINUTES: int = Field(default=120, description="JWT token expiration in minutes")

    APP_ENV: str = Field(default="local", description="Application environment: local, staging, prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR")

    # CORS settings
    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins. Use '*' for local only."
    )

    # Calendar: weekday numbers (Monday=0 ... Sunday=6) that are never billable
    WEEKEND_DAYS: str = Field(default="5,6", description="Comma-separated weekend weekday numbers")

    # Balance row locking
    LOCK_RETRY_ATTEMPTS: int = Field(default=3, description="Attempts before LockContention is surfaced")
    LOCK_RETRY_BACKOFF_SECONDS: float = Field(default=0.05, description="Linear backoff between lock retries")
    BALANCE_LOCK_NOWAIT: bool = Field(
        default=False,
        description="Fail immediately instead of waiting when a balance row is locked (PostgreSQL only)",
    )

    # Ledger
    AUTO_INITIALIZE_BALANCES: bool = Field(
        default=True,
        description="Create a missing balance row on first submission for (employee, type, year)",
    )
    PAY_PERIODS_PER_YEAR: int = Field(default=26, description="Pay periods used by PER_PAY_PERIOD accrual")

    # Version (can be git SHA or semver)
    VERSION: Optional[str] = Field(default=None, description="Application version (git SHA or semver)")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate APP_ENV"""
        allowed = ["local", "staging", "prod"]
        if v not in allowed:
            raise ValueError(f"APP_ENV must be one of {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate LOG_LEVEL"""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v.upper()

    @field_validator("WEEKEND_DAYS")
    @classmethod
    def validate_weekend_days(cls, v: str) -> str:
        """WEEKEND_DAYS must be a comma-separated list of integers 0-6"""
        for part in v.split(","):
            part = part.strip()
            if not part:
                continue
            if not part.isdigit() or int(part) > 6:
                raise ValueError("WEEKEND_DAYS must contain weekday numbers between 0 and 6")
        return v

    @field_validator("LOCK_RETRY_ATTEMPTS")
    @classmethod
    def validate_lock_retry_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("LOCK_RETRY_ATTEMPTS must be at least 1")
        return v

    def validate_production(self) -> None:
        """
        Validate settings for production environment

        Raises:
            ValueError: If production settings are invalid
        """
        if self.APP_ENV == "prod":
            if len(self.JWT_SECRET_KEY) < 32:
                raise ValueError(
                    "JWT_SECRET_KEY must be at least 32 characters in production environment"
                )
            if self.ALLOWED_ORIGINS == "*" or not self.ALLOWED_ORIGINS:
                raise ValueError(
                    "ALLOWED_ORIGINS must be explicitly set (not '*') in production environment"
                )

    def get_allowed_origins_list(self) -> List[str]:
        """
        Get list of allowed CORS origins

        Returns:
            List of allowed origins (or ['*'] for local)
        """
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    def get_weekend_days(self) -> Tuple[int, ...]:
        """Weekend definition as a sorted tuple of weekday numbers"""
        return tuple(sorted({int(p.strip()) for p in self.WEEKEND_DAYS.split(",") if p.strip()}))


# Create settings instance
settings = Settings()

# Validate production settings if in prod
if settings.APP_ENV == "prod":
    settings.validate_production()
