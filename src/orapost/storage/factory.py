"""Storage backend selection."""

from orapost.core.config import settings
from orapost.storage.base import StorageBackend


def get_storage_backend() -> StorageBackend:
    """Return the backend named by STORAGE_BACKEND.

    Raises:
        ValueError: If the backend is unknown or not configured
    """
    backend = settings.STORAGE_BACKEND.lower()

    if backend == "local":
        from orapost.storage.local import LocalStorageBackend

        return LocalStorageBackend()

    if backend == "gcs":
        if not settings.GCS_BUCKET_NAME:
            raise ValueError("GCS_BUCKET_NAME must be set when STORAGE_BACKEND=gcs")
        from orapost.storage.gcs import GCSStorageBackend

        return GCSStorageBackend()

    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND}")
