from __future__ import annotations

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application-level settings for the FastAPI service.

    This is separate from talent_quest.db.config.Settings, which focuses on the database layer.
    """

    # FastAPI metadata
    APP_NAME: str = Field(default="Maritime Talent Quest API")
    APP_DESCRIPTION: str = Field(
        default=(
            "Registration and administration API for the Maritime Talent Quest. "
            "Handles contestant and guest registration, QR passes, emails and exports."
        )
    )
    APP_VERSION: str = Field(default="0.1.0")

    # CORS
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Comma-separated list or JSON array of allowed origins. Default: *",
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)
    CORS_ALLOW_METHODS: List[str] = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_HEADERS: List[str] = Field(default_factory=lambda: ["*"])

    # Startup behavior
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(
        default=True,
        description="If true, run Alembic migrations (upgrade head) at app startup.",
    )
    AUTO_SEED: bool = Field(
        default=False,
        description="If true, create the initial admin account after migrations.",
    )
    SEED_ADMIN_EMAIL: str = Field(default="admin@maritimetalentquest.local")
    SEED_ADMIN_PASSWORD: str = Field(default="change-me-now")
    SEED_ADMIN_NAME: str = Field(default="Event Administrator")

    # Session tokens
    JWT_SECRET_KEY: str = Field(
        default="dev-secret-change-me",
        description="HMAC secret used to sign session tokens.",
    )
    JWT_ALGORITHM: str = Field(default="HS256")
    SESSION_EXPIRE_MINUTES: int = Field(default=60 * 24, description="Session lifetime (24h).")
    SESSION_COOKIE_NAME: str = Field(default="session")
    SESSION_COOKIE_SECURE: bool = Field(
        default=False, description="Mark the session cookie Secure (enable in production)."
    )

    # File storage
    STORAGE_ROOT: str = Field(
        default="./storage",
        description="Directory holding the public buckets (attachment, qr-codes).",
    )
    STORAGE_PUBLIC_BASE_URL: str = Field(
        default="http://localhost:8000/storage",
        description="Base URL under which bucket objects are published.",
    )
    ATTACHMENT_BUCKET: str = Field(default="attachment")
    QR_BUCKET: str = Field(default="qr-codes")
    QR_IMAGE_SIZE: int = Field(default=512, description="QR PNG width/height in pixels.")

    # Mail
    SMTP_HOST: Optional[str] = Field(
        default=None, description="SMTP host; when unset emails are not sent."
    )
    SMTP_PORT: int = Field(default=587)
    SMTP_USERNAME: Optional[str] = Field(default=None)
    SMTP_PASSWORD: Optional[str] = Field(default=None)
    SMTP_USE_TLS: bool = Field(default=False, description="Implicit TLS (port 465).")
    SMTP_START_TLS: bool = Field(default=True, description="Upgrade with STARTTLS.")
    SMTP_TIMEOUT_SECONDS: float = Field(default=30.0)
    MAIL_FROM_ADDRESS: str = Field(default="noreply.maritimetalentquest@gmail.com")
    MAIL_FROM_NAME: str = Field(default="MARITIME TALENT QUEST 2025 Team")
    MAIL_REPLY_TO: str = Field(default="dummyemail@gmail.com")
    EMAIL_BATCH_SIZE: int = Field(default=10, ge=1)
    EMAIL_BATCH_DELAY_SECONDS: float = Field(default=1.0, ge=0)
    QR_EMAIL_SUBJECT: str = Field(default="Your Maritime Talent Quest 2025 QR Code")

    # Event branding used in emails and exports
    EVENT_NAME: str = Field(default="MARITIME TALENT QUEST 2025")
    EVENT_CONTACT_EMAIL: str = Field(default="dummyemail@gmail.com")
    EVENT_CONTACT_PHONE: str = Field(default="+63 123 456 7890")

    # Environment label
    ENVIRONMENT: Optional[str] = Field(
        default=None, description="Environment label (dev/test/prod)"
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """
        Accept both JSON array format and comma-separated formats for CORS origins.
        """
        if v is None:
            return ["*"]
        if isinstance(v, str):
            parts = [p.strip() for p in v.split(",") if p.strip()]
            return parts or ["*"]
        if isinstance(v, list):
            return v or ["*"]
        return ["*"]

    @property
    def smtp_configured(self) -> bool:
        return bool(self.SMTP_HOST)


# PUBLIC_INTERFACE
def get_app_settings() -> AppSettings:
    """
    Return a new AppSettings instance populated from environment variables.

    A fresh instance is built on each call so tests can adjust the environment.
    """
    return AppSettings()
