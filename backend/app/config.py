"""
Application configuration loaded from environment variables.
"""
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel
from pydantic_settings import BaseSettings


class NylasConfig(BaseModel):
    """Provider settings handed explicitly to the Nylas-facing services."""

    client_id: str
    api_key: str
    api_uri: str
    callback_uri: str
    timeout_seconds: float = 30.0

    model_config = {"frozen": True}


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Nylas (the API key doubles as the OAuth client secret)
    nylas_client_id: str = ""
    nylas_api_key: str = ""
    nylas_api_uri: str = "https://api.us.nylas.com"
    nylas_callback_uri: str = "http://localhost:8000/oauth/exchange"
    nylas_timeout_seconds: float = 30.0

    # Caller identity
    default_user_id: str = "default-user"
    user_id_header: str = "x-user-id"

    # Single-recipient deployments fix the recipient here
    default_recipient: Optional[str] = None

    # Grant storage: "sql" or "memory"
    grant_store_backend: str = "sql"
    database_url: str = "sqlite+aiosqlite:///./grants.db"

    # Signed OAuth state (plain userId when empty)
    oauth_state_secret: str = ""
    oauth_state_ttl_minutes: int = 15

    # Grant administration routes
    admin_api_key: str = ""

    # Frontend URL for CORS
    frontend_url: str = "http://localhost:5173"

    # Debug mode
    debug: bool = False

    def nylas_config(self) -> NylasConfig:
        return NylasConfig(
            client_id=self.nylas_client_id,
            api_key=self.nylas_api_key,
            api_uri=self.nylas_api_uri.rstrip("/"),
            callback_uri=self.nylas_callback_uri,
            timeout_seconds=self.nylas_timeout_seconds,
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
