"""
Application Configuration
"""
from pydantic_settings import BaseSettings
from typing import List
import warnings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Asset Depreciation API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, staging, production

    # Database
    DATABASE_URL: str = "sqlite:///./assetops.db"

    # Security
    SECRET_KEY: str = "your-super-secret-key-change-in-production-min-32-chars"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    CRON_SECRET: str = ""

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    # Depreciation
    DEPRECIATION_ELEVATED_ROLES: str = "ADMIN,ACCTG,SYSTEM"  # may commit a batch run
    SCHEDULE_MANAGER_ROLES: str = "ADMIN,MANAGER,HR"
    SYSTEM_ACTOR_ROLE: str = "SYSTEM"
    DEPRECIATION_WORKERS: int = 1  # >1 runs the calculation phase on a thread pool

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def elevated_roles_list(self) -> List[str]:
        return [role.strip().upper() for role in self.DEPRECIATION_ELEVATED_ROLES.split(",") if role.strip()]

    @property
    def schedule_manager_roles_list(self) -> List[str]:
        return [role.strip().upper() for role in self.SCHEDULE_MANAGER_ROLES.split(",") if role.strip()]

    @property
    def database_url(self) -> str:
        """Get properly formatted database URL"""
        url = self.DATABASE_URL
        if url.startswith("file:"):
            path = url[5:]
            return f"sqlite:///{path}"
        return url

    @property
    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.ENVIRONMENT.lower() == "production"

    def validate_security_settings(self):
        """Validate security settings and warn about insecure defaults"""
        default_keys = [
            "your-super-secret-key-change-in-production-min-32-chars",
            "secret-key",
            "change-me",
        ]

        if self.SECRET_KEY in default_keys:
            if self.is_production:
                raise ValueError(
                    "CRITICAL: Default SECRET_KEY detected in production! "
                    "Set the SECRET_KEY environment variable to a secure random value."
                )
            warnings.warn(
                "WARNING: Using default SECRET_KEY. "
                "Set SECRET_KEY environment variable for production.",
                UserWarning
            )

        if self.is_production and self.DEBUG:
            raise ValueError(
                "CRITICAL: DEBUG mode is enabled in production! "
                "Set DEBUG=False for production environment."
            )

        # The scheduler trigger is open without a cron secret
        if self.is_production and not self.CRON_SECRET:
            raise ValueError(
                "CRITICAL: CRON_SECRET is not set in production! "
                "Scheduled depreciation triggers would be unauthenticated."
            )

        if self.DEPRECIATION_WORKERS < 1:
            raise ValueError("DEPRECIATION_WORKERS must be at least 1")

        return True

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()

# Validate security settings on import (but don't crash in development)
try:
    settings.validate_security_settings()
except ValueError as e:
    if settings.is_production:
        raise
    else:
        warnings.warn(str(e), UserWarning)
