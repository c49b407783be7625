from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from fastapi import Depends, Request
from typing_extensions import Annotated


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite+aiosqlite:///./taskpilot.db"
    create_tables: bool = True  # alembic owns the schema in production

    cache_ttl_seconds: int = 300
    cache_sweep_interval_seconds: int = 60
    cache_maxsize: int = 1024  # tenants per cache

    auth_mode: str = "auth0"  # "auth0" | "mock"
    auth0_domain: str = ""
    auth0_audience: str = ""
    claim_namespace: str = "https://taskpilot-api/"
    mock_tenant: str = "tenant-A"
    mock_roles: list[str] = ["admin"]

    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.0-flash"
    ai_timeout_seconds: float = 10.0

    cors_origins: list[str] = ["*"]

    log_level: str = "INFO"

    @property
    def auth0_issuer(self) -> str:
        domain = self.auth0_domain.rstrip("/")
        if not domain.startswith("http"):
            domain = f"https://{domain}"
        return f"{domain}/"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was built with."""
    return request.app.state.settings


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
