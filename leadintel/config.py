"""
Application configuration using pydantic-settings.
All config is validated at startup - fail fast if anything is missing.
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_base_url: str = "http://localhost:8000"
    log_level: str = "INFO"
    allowed_origins: str = ""  # Comma-separated CORS origins

    # Database
    database_url: str
    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Webhook secrets (provider-wide; a lead source may carry its own secret too)
    webhook_secret_opensend: str = ""
    webhook_secret_warmly: str = ""
    webhook_signing_key: str = ""
    require_signed_webhooks: bool = False

    # Encryption (per-source webhook secrets at rest)
    encryption_key: str = ""

    # Sentry
    sentry_dsn: str = ""

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
