"""Local filesystem image storage backend."""

import asyncio
from pathlib import Path
from typing import Optional

from orapost.core.config import settings
from orapost.storage.base import ImageVariant, ProgressCallback, StorageBackend

CHUNK_SIZE = 65536  # 64KB chunks


class LocalStorageBackend(StorageBackend):
    """Local filesystem storage backend."""

    def __init__(self, base_path: Optional[Path] = None):
        self.base_path = Path(base_path or settings.LOCAL_STORAGE_PATH)

    def get_target_path(self, upload_id: str, user_id: str, variant: ImageVariant) -> str:
        """Generate local target path under posts/{user_id}/."""
        return str(self.base_path / self._object_name(upload_id, user_id, variant))

    async def store_image(
        self,
        upload_id: str,
        user_id: str,
        variant: ImageVariant,
        data: bytes,
        content_type: str = "image/jpeg",
        progress_callback: Optional[ProgressCallback] = None,
    ) -> str:
        """Write image bytes to the filesystem from a worker thread."""
        target_path = Path(self.get_target_path(upload_id, user_id, variant))
        await asyncio.to_thread(self._write_chunks, target_path, data, progress_callback)
        return str(target_path)

    @staticmethod
    def _write_chunks(target_path: Path, data: bytes, progress_callback: Optional[ProgressCallback]) -> None:
        target_path.parent.mkdir(parents=True, exist_ok=True)

        total = len(data)
        written = 0
        with open(target_path, "wb") as f:
            view = memoryview(data)
            while written < total:
                chunk = view[written:written + CHUNK_SIZE]
                f.write(chunk)
                written += len(chunk)
                if progress_callback:
                    progress_callback(written / total)

        if progress_callback and total == 0:
            progress_callback(1.0)

    def get_backend_name(self) -> str:
        return "local"
