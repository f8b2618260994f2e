"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str | None = None
    supabase_service_key: str | None = None
    admin_token: str
    photos_bucket: str = "photos"
    selections_prefix: str = "selections"
    local_store_path: str = ".gallery-local.json"
    email_endpoint_url: str | None = None
    email_from: str = "galerie@localhost"
    public_base_url: str = "http://localhost:5173"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def is_backend_configured(settings: Settings) -> bool:
    """Return whether the hosted backend credentials are present."""
    url = (settings.supabase_url or "").strip()
    key = (settings.supabase_service_key or "").strip()
    return bool(url and key)
