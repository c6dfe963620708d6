"""
maui_care.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for the service and its client.
- Hide secrets from repr/logging (e.g., JWT secret).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Env-driven configuration shared by the care service and the client layer.
    Defaults are safe for local dev.
    """

    model_config = SettingsConfigDict(env_prefix="MAUI_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables and dev tokens.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "maui-care"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Auth
    jwt_alg: str = "HS256"
    jwt_issuer: str = "maui-care"
    jwt_audience: str = "maui-care-api"
    jwt_secret: str = Field(default="dev-secret-change-me-outside-local-dev", repr=False)

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./maui_care.db"

    # Client side
    service_base_url: str = "http://localhost:8080"
    directory_timeout_seconds: float = Field(default=15.0, gt=0)
    health_check_timeout_seconds: float = Field(default=5.0, gt=0)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# The client-side timeouts live here too so a single env file configures both ends.
