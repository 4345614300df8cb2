"""Runtime settings for the chat engine and its HTTP surface."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or a local ``.env`` file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    app_name: str = Field(default="Portal Chat", alias="APP_NAME")

    # Durable store
    storage_backend: Literal["memory", "mongo"] = Field(default="memory", alias="STORAGE_BACKEND")
    mongo_url: str = Field(default="mongodb://localhost:27017", alias="MONGO_URL")
    mongo_db_name: str = Field(default="portal_chat", alias="MONGO_DB_NAME")
    state_collection: str = Field(default="engine_state", alias="STATE_COLLECTION")

    # Shared admin side of every conversation
    admin_pool_id: str = Field(default="admin-1", alias="ADMIN_POOL_ID")
    admin_pool_name: str = Field(default="Admin Support", alias="ADMIN_POOL_NAME")

    # Simulated network acknowledgment before a send resolves
    send_latency_seconds: float = Field(default=0.5, ge=0, alias="SEND_LATENCY_SECONDS")
    notification_preview_length: int = Field(default=50, gt=0, alias="NOTIFICATION_PREVIEW_LENGTH")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


@lru_cache
def get_settings() -> Settings:
    return Settings()
