"""Configuration management for the Ora upload service."""

from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_NONE_STRINGS = {"", "none", "null"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    ENV: str = "local"
    SERVICE_NAME: str = "ora-uploads"
    SERVICE_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Image storage
    STORAGE_BACKEND: str = "local"  # "gcs" or "local"
    LOCAL_STORAGE_PATH: str = "data/images"
    GCP_PROJECT_ID: str = ""
    GCS_BUCKET_NAME: str = ""

    # Post creation API (empty = in-process post store)
    POST_API_URL: str = ""
    POST_API_TIMEOUT: int = 30  # seconds

    # Upload queue
    MAX_CONCURRENT_UPLOADS: int = 3
    UPLOAD_TIMEOUT_SECONDS: float = 120.0
    COMPLETED_RETENTION_SECONDS: float | None = 2.0  # None keeps completed items visible
    PROGRESS_NOTIFY_THRESHOLD: float = 0.05
    UPLOAD_PROGRESS_SHARE: float = 0.7  # byte transfer share, post creation gets the rest

    # Image processing
    THUMBNAIL_MAX_DIMENSION: int = 400
    FULL_IMAGE_MAX_DIMENSION: int | None = None

    # Post composition rules
    MIN_INTERESTS_PER_IMAGE: int = 1
    MAX_INTERESTS_PER_IMAGE: int = 5
    MAX_IMAGES_PER_POST: int = 10
    MAX_IMAGE_UPLOAD_MB: int = 25

    @field_validator("COMPLETED_RETENTION_SECONDS", "FULL_IMAGE_MAX_DIMENSION", mode="before")
    @classmethod
    def _parse_optional(cls, value: Any) -> Any:
        """Accept None, null or an empty value from the environment."""
        if isinstance(value, str) and value.strip().lower() in _NONE_STRINGS:
            return None
        return value

    @property
    def max_image_upload_bytes(self) -> int:
        """Convert MAX_IMAGE_UPLOAD_MB to bytes."""
        return self.MAX_IMAGE_UPLOAD_MB * 1024 * 1024

    @property
    def uses_remote_post_api(self) -> bool:
        """Whether posts are created through the remote API."""
        return bool(self.POST_API_URL)


# Singleton settings instance
settings = Settings()
