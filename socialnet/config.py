from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings. Every field can be overridden by an env var of the same name."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = "/api"
    database_url: str = "sqlite:///./socialnet.db"
    log_level: str = "INFO"
    cors_allow_origins: List[str] = ["*"]

    # Tokens
    jwt_secret: str = Field(default="change-me-in-production-set-JWT_SECRET")
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7

    # Image uploads
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_image_types: List[str] = [
        "image/png",
        "image/jpeg",
        "image/webp",
        "image/gif",
    ]
    upload_folder: str = "social_media_posts"

    # S3-compatible object storage; in-memory storage is used when no bucket is set
    storage_bucket: Optional[str] = None
    storage_region: Optional[str] = None
    storage_endpoint: Optional[str] = None
    storage_public_url: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
