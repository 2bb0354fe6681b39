"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Relational database (DATABASE_URL wins when set)
    database_url: Optional[str] = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "referralme_user"
    postgres_password: str = "password"
    postgres_db: str = "referralme_db"

    # MongoDB (GridFS file storage backend)
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "referralme_files"
    gridfs_bucket: str = "uploads"

    # Identity provider (Firebase Authentication)
    firebase_project_id: str = ""
    identity_keys_url: str = (
        "https://www.googleapis.com/robot/v1/metadata/x509/"
        "securetoken@system.gserviceaccount.com"
    )
    identity_issuer_prefix: str = "https://securetoken.google.com/"
    identity_keys_timeout_seconds: float = 5.0

    # Server-issued session tokens
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # Uploads
    storage_backend: str = "local"  # local | gridfs
    upload_dir: str = "uploads"
    upload_max_size_mb: int = 10
    upload_inline_fallback: bool = True
    upload_inline_max_kb: int = 1024

    # DeepSeek AI (OpenAI-compatible), optional ATS scoring and job descriptions
    deepseek_api_key: str = ""
    deepseek_base_url: str = "https://api.deepseek.com/v1"

    # Brevo transactional e-mail
    brevo_api_key: str = ""
    brevo_api_url: str = "https://api.brevo.com/v3/smtp/email"
    email_from: str = ""
    email_from_name: str = "ReferralMe"
    app_base_url: str = "http://localhost:8000"
    job_alert_max_recipients: int = 50

    # App
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    @property
    def sqlalchemy_url(self) -> str:
        """Connection URL for SQLAlchemy; PostgreSQL unless DATABASE_URL is set."""
        if self.database_url:
            # Heroku/Render style URLs
            if self.database_url.startswith("postgres://"):
                return self.database_url.replace("postgres://", "postgresql://", 1)
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def upload_max_size_bytes(self) -> int:
        return self.upload_max_size_mb * 1024 * 1024

    @property
    def identity_issuer(self) -> str:
        return f"{self.identity_issuer_prefix}{self.firebase_project_id}"

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
