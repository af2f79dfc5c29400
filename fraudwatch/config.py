"""
Configuration settings for fraudwatch.

Uses Pydantic Settings to load environment variables for the document store
backend, logging, pagination defaults and the coordinator's debounce window.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Document store
    store_backend: Literal["memory", "postgres"] = Field("memory", alias="STORE_BACKEND")
    memory_store_path: Optional[Path] = Field(None, alias="MEMORY_STORE_PATH")
    # Semicolon separated, e.g. "risk_scores:userId,timestamp:desc;transactions:fromUserId,createdAt:desc"
    composite_indexes: str = Field("", alias="COMPOSITE_INDEXES")
    push_scope_filters: bool = Field(True, alias="PUSH_SCOPE_FILTERS")

    # Postgres backend
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("fraudwatch", alias="DB_NAME")
    db_documents_table: str = Field("documents", alias="DB_DOCUMENTS_TABLE")
    db_pool_max_size: int = Field(10, alias="DB_POOL_MAX_SIZE")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Dashboard defaults
    default_page_size: int = Field(10, ge=1, alias="DEFAULT_PAGE_SIZE")
    search_debounce_ms: int = Field(500, ge=0, alias="SEARCH_DEBOUNCE_MS")
    recent_sessions_limit: int = Field(20, ge=1, alias="RECENT_SESSIONS_LIMIT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def index_specs(self) -> List[str]:
        return [spec.strip() for spec in self.composite_indexes.split(";") if spec.strip()]

    @property
    def dsn(self) -> str:
        return (
            f"postgresql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
