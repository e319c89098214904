"""Application configuration using Pydantic Settings."""
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # App
    app_name: str = "Demo Class Scheduler"
    debug: bool = False
    base_url: str = "http://localhost:3000"  # frontend origin used in notification links

    # MongoDB
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "demo_classes"

    # JWT (tokens are issued by the identity service; we only verify them)
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"

    # AWS S3 (class attachments)
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_region: str = "ap-south-1"
    s3_bucket_documents: str = "demo-class-documents"

    # Firebase (FCM) realtime push
    firebase_credentials_path: str = ""

    # SMTP
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    email_from: str = "no-reply@example.com"
    email_from_name: str = "Klariti Learning"
    support_email: str = "support@example.com"

    # Scheduling
    default_call_duration: int = 40
    join_window_minutes: int = 10
    reminders_enabled: bool = False
    reminder_interval_seconds: int = 60

    # CORS (comma-separated origins)
    cors_origins: str = "http://localhost:3000"

    @model_validator(mode="after")
    def _validate_production_secrets(self):
        if not self.debug:
            if self.jwt_secret_key in ("change-me-in-production", ""):
                raise ValueError(
                    "JWT_SECRET_KEY must be set to a strong secret when DEBUG is not enabled. "
                    "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
                )
        return self


settings = Settings()
