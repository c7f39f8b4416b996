"""Google Cloud Storage image backend."""

import asyncio
import io
from typing import Optional

from google.cloud import storage

from orapost.core.config import settings
from orapost.storage.base import ImageVariant, ProgressCallback, StorageBackend

# Resumable upload chunk size, must be a multiple of 256KB
UPLOAD_CHUNK_SIZE = 1024 * 1024


class _ProgressReader(io.BytesIO):
    """BytesIO that reports how much of the buffer has been consumed."""

    def __init__(self, data: bytes, progress_callback: Optional[ProgressCallback]):
        super().__init__(data)
        self._total = len(data)
        self._progress_callback = progress_callback

    def read(self, size: int | None = -1) -> bytes:
        chunk = super().read(size)
        if self._progress_callback and self._total:
            self._progress_callback(min(self.tell() / self._total, 1.0))
        return chunk


class GCSStorageBackend(StorageBackend):
    """Google Cloud Storage backend."""

    def __init__(self):
        self._client: Optional[storage.Client] = None
        self._bucket: Optional[storage.Bucket] = None

    def _get_bucket(self) -> storage.Bucket:
        """Lazy-load and cache GCS bucket."""
        if self._bucket is None:
            if not settings.GCS_BUCKET_NAME:
                raise ValueError("GCS_BUCKET_NAME not configured")

            self._client = storage.Client(project=settings.GCP_PROJECT_ID or None)
            self._bucket = self._client.bucket(settings.GCS_BUCKET_NAME)

        return self._bucket

    def get_target_path(self, upload_id: str, user_id: str, variant: ImageVariant) -> str:
        """Generate gs:// URI for the image object."""
        return f"gs://{settings.GCS_BUCKET_NAME}/{self._object_name(upload_id, user_id, variant)}"

    async def store_image(
        self,
        upload_id: str,
        user_id: str,
        variant: ImageVariant,
        data: bytes,
        content_type: str = "image/jpeg",
        progress_callback: Optional[ProgressCallback] = None,
    ) -> str:
        """Upload image bytes to GCS from a worker thread."""
        bucket = self._get_bucket()
        blob = bucket.blob(self._object_name(upload_id, user_id, variant), chunk_size=UPLOAD_CHUNK_SIZE)
        blob.content_type = content_type

        reader = _ProgressReader(data, progress_callback)
        await asyncio.to_thread(blob.upload_from_file, reader, rewind=True, content_type=content_type)

        if progress_callback:
            progress_callback(1.0)
        return self.get_target_path(upload_id, user_id, variant)

    def get_backend_name(self) -> str:
        return "gcs"
