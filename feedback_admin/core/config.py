"""
Centralized configuration management using Pydantic Settings.

This module provides type-safe configuration management with validation,
loading settings from environment variables and .env files.
"""

from typing import Annotated, List, Literal, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
import json


PLACEHOLDER_SECRETS = {
    "change-me-session-secret",
    "change-me-jwt-secret",
    "generate-with-openssl-rand-hex-32",
    "CHANGE_ME_32_CHARS_MIN",
    "your-secret-key-here",
}


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Secrets should never be committed to code - use .env file (gitignored).
    """

    # Application
    app_name: str = Field(
        default="Start2Write",
        description="Product name used in API docs and outgoing emails"
    )
    environment: Literal["development", "test", "production"] = Field(
        default="development",
        description="Deployment environment (production disables dev conveniences)"
    )
    port: int = Field(
        default=4000,
        description="Port used when running the server directly"
    )
    api_prefix: str = Field(
        default="/api",
        description="Prefix for all API routers"
    )
    client_url: Annotated[List[str], NoDecode] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins (admin dashboard / public form)"
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/feedback_admin.db",
        description="Async SQLAlchemy connection URL"
    )
    database_create_all: bool = Field(
        default=True,
        description="Create missing tables at startup (disable when using migrations)"
    )

    # Authentication
    auth_mode: Literal["token", "session"] = Field(
        default="token",
        description="'token' returns a bearer JWT; 'session' uses server-side sessions with cookies"
    )
    secret_key: str = Field(
        ...,
        description="Secret key for JWT signing (generate with: openssl rand -hex 32)"
    )
    session_secret: str = Field(
        ...,
        description="Secret key for session cookie tokens (generate with: openssl rand -hex 32)"
    )
    access_token_expire_minutes: int = Field(
        default=60,
        gt=0,
        description="Lifetime of bearer tokens and server-side sessions"
    )
    reset_token_expire_minutes: int = Field(
        default=15,
        gt=0,
        description="Lifetime of the password-reset proof issued after OTP verification"
    )
    cookie_domain: Optional[str] = Field(
        default=None,
        description="Domain attribute for auth cookies"
    )
    cookie_secure: bool = Field(
        default=False,
        description="Mark auth cookies Secure (enable behind HTTPS)"
    )

    # Seed administrator
    admin_email: str = Field(
        default="admin@example.com",
        description="Email of the administrator created at startup"
    )
    admin_password: str = Field(
        default="ChangeMe123!",
        description="Password of the seeded administrator"
    )
    admin_name: str = Field(
        default="Administrator",
        description="Display name of the seeded administrator"
    )

    # OTP
    require_otp: bool = Field(
        default=True,
        description="Require an emailed one-time code after password login"
    )
    otp_expiry_minutes: int = Field(default=10, gt=0)
    otp_resend_window_seconds: int = Field(default=60, ge=0)
    otp_max_attempts: int = Field(default=5, gt=0)

    # Outbound email
    smtp_host: str = Field(default="smtp.gmail.com")
    smtp_port: int = Field(default=587)
    smtp_user: Optional[str] = Field(default=None)
    smtp_password: Optional[str] = Field(default=None)
    email_from_name: Optional[str] = Field(
        default=None,
        description="Sender display name (defaults to app_name)"
    )
    brevo_api_key: Optional[str] = Field(default=None)
    brevo_sender: Optional[str] = Field(default=None)
    email_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout applied to each email transport attempt"
    )

    # Rate limiting
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_window_seconds: int = Field(default=60, gt=0)
    rate_limit_max: int = Field(default=60, gt=0)

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True)

    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @field_validator("client_url", mode="before")
    @classmethod
    def parse_client_url(cls, v: str | List[str]) -> List[str]:
        """
        Parse client_url from JSON string, comma-separated string or list.
        """
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                return parsed if isinstance(parsed, list) else [str(parsed)]
            except json.JSONDecodeError:
                return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("secret_key", "session_secret")
    @classmethod
    def validate_secret(cls, v: str, info) -> str:
        """
        Validate that signing secrets are properly configured.

        Raises ValueError if empty, a known placeholder, or shorter than 32 characters.
        """
        name = info.field_name.upper()
        if not v or v.strip() == "":
            raise ValueError(
                f"{name} is required and cannot be empty. "
                "Generate one with: openssl rand -hex 32"
            )
        if v in PLACEHOLDER_SECRETS:
            raise ValueError(
                f"{name} must be set to a secure random value (not placeholder). "
                "Generate one with: openssl rand -hex 32"
            )
        if len(v) < 32:
            raise ValueError(
                f"{name} must be at least 32 characters long for security. "
                f"Current length: {len(v)}. Generate with: openssl rand -hex 32"
            )
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """
        Validate database URL format.

        Only async drivers are accepted since the engine is created with
        create_async_engine, and only backends that support
        UPDATE ... RETURNING (the OTP attempt counter relies on it).
        """
        if not v or v.strip() == "":
            raise ValueError("DATABASE_URL is required and cannot be empty")

        valid_schemes = ["sqlite+aiosqlite", "postgresql+asyncpg"]
        if not any(v.startswith(scheme + "://") for scheme in valid_schemes):
            raise ValueError(
                f"DATABASE_URL must start with one of: {', '.join(valid_schemes)}. "
                f"Got: {v[:20]}..."
            )
        return v

    @field_validator("admin_email")
    @classmethod
    def normalize_admin_email(cls, v: str) -> str:
        return v.strip().lower()


# Global settings instance
# Import this instance throughout the application
settings = Settings()
