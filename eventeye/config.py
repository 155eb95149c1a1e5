"""
Configuration module for the EventEye certificate service
Loads environment variables and provides settings
"""
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_ENV: str = "development"
    APP_DEBUG: bool = False

    # Storage backend: "sql" (kv_store table) or "redis"
    STORE_BACKEND: str = "sql"

    # Database
    DATABASE_URL: str = "sqlite:///./eventeye.db"

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"
    REDIS_KEY_PREFIX: str = "eventeye:"

    # Identity provider (Supabase-compatible auth API)
    IDENTITY_PROVIDER_URL: str = "http://localhost:54321"
    IDENTITY_SERVICE_KEY: str = ""
    IDENTITY_TIMEOUT_SEC: float = 10.0
    AUTH_ENABLED: bool = True

    # Certificates
    CERTIFICATE_BASE_URL: str = "https://eventeye.app/verify"
    CODE_LENGTH: int = 12
    CODE_MAX_ATTEMPTS: int = 5

    # Issuance
    ISSUANCE_MAX_WORKERS: int = 1  # 1 = sequential
    MAX_PARTICIPANTS_PER_BATCH: int = 1000

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    class Config:
        env_file = ".env"
        extra = "allow"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
