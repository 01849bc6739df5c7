from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_env: str = "local"
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Which backend serves accounts, documents and files
    backend: Literal["appwrite", "local"] = "appwrite"

    # Backend-as-a-service (Appwrite)
    endpoint: str = "https://cloud.appwrite.io/v1"
    project_id: str = ""
    api_key: str | None = None
    database_id: str = "intake"
    patient_collection_id: str = "patients"
    bucket_id: str = "identification"
    http_timeout_seconds: float = 10.0

    # Local backend
    database_url: str = "sqlite:///./intake.db"
    file_storage_root: str = "uploads"

    # Redis (idempotency keys)
    redis_url: str | None = None
    idempotency_ttl_seconds: int = 24 * 60 * 60

    # Pydantic v2 style config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance so the .env is parsed once.
    """
    return Settings()
