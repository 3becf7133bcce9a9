"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Persistence
    storage_backend: str = "postgres"  # postgres | memory
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "siwes_user"
    postgres_password: str = "password"
    postgres_db: str = "siwes_db"
    database_url: str = ""

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # Uploads
    upload_dir: str = "uploads"
    max_image_size_mb: int = 5

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"  # text | json

    # App
    debug: bool = False
    cors_origins: List[str] = ["*"]

    @property
    def postgres_url(self) -> str:
        """Connection URL; DATABASE_URL wins over the individual parts."""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
