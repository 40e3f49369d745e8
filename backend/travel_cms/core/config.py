"""
Core configuration module for the Thapa Holidays site and admin CMS.
Settings are read from environment variables (or a .env file).
"""

from pydantic_settings import BaseSettings
import logging

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Defaults are suitable for a local SQLite development setup.
    """

    # Application
    app_name: str = "Thapa Holidays CMS"
    app_version: str = "1.0.0"
    environment: str = "production"
    debug: bool = False

    # Database
    database_url: str = "sqlite:///./travel_cms.db"
    database_pool_size: int = 10
    database_max_overflow: int = 20
    database_pool_recycle: int = 1800  # Recycle connections after 30 min
    database_pool_pre_ping: bool = True

    # API Configuration
    api_prefix: str = "/api"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_workers: int = 2

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"

    # CORS
    cors_origins: list = ["http://localhost:3000", "http://127.0.0.1:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
    cors_allow_headers: list = ["Content-Type", "Accept", "Authorization"]

    # Sessions (MUST override secret_key via .env in production)
    secret_key: str = "CHANGE-ME-IN-DOTENV"
    token_algorithm: str = "HS256"
    token_expire_minutes: int = 60 * 12
    session_cookie_name: str = "session_token"

    # Bootstrap admin created by POST /seed
    admin_name: str = "Admin"
    admin_email: str = "admin@thapaholidays.com"
    admin_password: str = "admin123"

    # Outbound email. An empty smtp_host disables sending.
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_timeout: int = 30
    email_from: str = "no-reply@thapaholidays.com"
    email_to: str = ""

    # Media store (Cloudinary)
    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    media_folder: str = "thapa-holidays"
    media_timeout: int = 30

    # Behaviour
    rate_limit_enabled: bool = True
    page_cache_ttl_seconds: int = 300
    page_cache_max_entries: int = 256
    slug_max_attempts: int = 20
    search_result_limit: int = 5

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
