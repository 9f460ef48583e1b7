"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./notifications.db",
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    app_timezone: str = Field(
        default="UTC",
        description="IANA timezone (or UTC offset) used to store and present datetimes",
    )
    app_name: str = Field(default="Apporte", description="Name shown in outgoing messages")
    system_url: str = Field(
        default="https://app.apporte.com",
        description="Base URL of the web application linked from notifications",
    )

    sendgrid_api_key: str | None = Field(
        default=None,
        description="SendGrid API key used for sending transactional emails via the REST API",
    )
    sendgrid_sender: str | None = Field(
        default=None,
        description="Email address that will appear as the sender of transactional messages",
        min_length=3,
    )

    keycloak_admin_url: str | None = Field(
        default=None,
        description="Keycloak admin realm URL, e.g. https://sso/admin/realms/apporte",
    )
    keycloak_admin_username: str | None = Field(default=None)
    keycloak_admin_password: str | None = Field(default=None)
    keycloak_client_id: str = Field(default="admin-cli")
    keycloak_timeout_seconds: float = Field(default=10.0, gt=0)

    user_cache_ttl_seconds: int = Field(
        default=3600,
        ge=0,
        description="Age after which a cached user profile is refreshed from Keycloak",
    )
    recipient_cache_ttl_seconds: int = Field(
        default=30,
        ge=0,
        description="How long a resolved recipient list is reused for an identical request (0 disables)",
    )
    fallback_admin_id: str = Field(default="admin-001")
    fallback_admin_email: str = Field(default="admin@apporte.com")
    fallback_admin_name: str = Field(default="Administrador")

    whatsapp_enabled: bool = Field(default=False)
    whatsapp_headless: bool = Field(default=True)
    whatsapp_timeout_seconds: int = Field(default=30, gt=0)
    whatsapp_qr_timeout_seconds: int = Field(default=120, gt=0)
    whatsapp_max_retries: int = Field(default=3, ge=1)
    whatsapp_retry_delay_ms: int = Field(default=2000, ge=0)
    whatsapp_session_path: str = Field(default="./whatsapp-session")
    whatsapp_resend_window_minutes: int = Field(
        default=5,
        ge=0,
        description="Messages to the same phone inside this window are skipped",
    )
    whatsapp_default_country_code: str = Field(default="55")

    auth_jwt_key: str | None = Field(
        default=None,
        description="Secret or PEM public key used to verify bearer tokens",
    )
    auth_jwt_algorithms: list[str] = Field(default_factory=lambda: ["RS256"])
    auth_jwt_audience: str | None = Field(default=None)

    @model_validator(mode="after")
    def _validate_sendgrid_pair(self) -> "Settings":
        if bool(self.sendgrid_api_key) ^ bool(self.sendgrid_sender):
            raise ValueError(
                "SENDGRID_API_KEY and SENDGRID_SENDER must both be provided to enable email"
            )
        if self.sendgrid_sender and "@" not in self.sendgrid_sender:
            raise ValueError("SENDGRID_SENDER must be a valid email address")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
