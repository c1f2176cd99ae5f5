"""Application configuration settings."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict


def _get_default_database_url() -> str:
    """Get the default database URL, using the mounted volume path if available."""
    if os.path.isdir("/data"):
        return "sqlite:////data/desco.db"
    return "sqlite:///./desco.db"


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    PROJECT_NAME: str = "DESCO Report Server"
    VERSION: str = "0.1.0"
    DEBUG: bool = True
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str | None = None

    # Database - defaults to the mounted volume path if /data exists
    DATABASE_URL: str = _get_default_database_url()

    # JWT Authentication
    SECRET_KEY: str = "your-secret-key-change-this-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    JWT_ISSUER: str = "desco-report-server"
    JWT_AUDIENCE: str = "desco-report-client"

    # Frontend origins allowed by CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "https://localhost:3000"]

    # DESCO prepaid provider API
    DESCO_BASE_URL: str = "https://prepaid.desco.org.bd"
    DESCO_TIMEOUT_SECONDS: float = 10.0
    DESCO_USER_AGENT: str = "DESCO-Report-Server/1.0"

    # Start-up dependency probing
    DEPENDENCY_CHECK_ENABLED: bool = True
    DEPENDENCY_CHECK_MAX_RETRIES: int = 30
    DEPENDENCY_CHECK_RETRY_DELAY_SECONDS: float = 2.0

    # Seeded administrator
    ADMIN_USERNAME: str = "admin"
    ADMIN_EMAIL: str = "admin@desco.com"
    ADMIN_PASSWORD: str = "Admin@123"


settings = Settings()
