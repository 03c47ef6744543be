from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    # App
    app_name: str = "FlowTrack"
    debug: bool = False

    # Persistence
    database_url: str = "sqlite:///./flowtrack.db"
    store_backend: str = "sql"  # sql, memory

    # Workflow
    approval_levels: int = Field(default=2, ge=1, le=3)
    write_retries: int = Field(default=5, ge=1)

    # Seeded accounts
    default_user_password: str = "password123"

    # Logging
    log_level: str = "INFO"
    log_dir: Optional[str] = None

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # Celery
    celery_broker_url: Optional[str] = None
    celery_result_backend: Optional[str] = None

    @property
    def celery_broker(self) -> str:
        return self.celery_broker_url or self.redis_url

    @property
    def celery_backend(self) -> str:
        return self.celery_result_backend or self.redis_url

    # Risk enrichment
    enrichment_url: Optional[str] = None
    enrichment_api_key: Optional[str] = None
    enrichment_timeout: int = 30  # seconds
    enrichment_fallback: bool = True

    @property
    def enrichment_enabled(self) -> bool:
        return bool(self.enrichment_url)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"  # Allow extra env vars without raising validation errors
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
