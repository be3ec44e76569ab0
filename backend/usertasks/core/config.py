"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "User Tasks API"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://usertasks@localhost:5432/usertasks"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_workspace: str | None = None
    opik_project: str = "usertasks"
    scheduler_enabled: bool = True
    scheduler_timezone: str = "UTC"
    jobs_run_on_startup: bool = True


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
