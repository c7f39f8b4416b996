"""Abstract image storage backend interface."""

import re
from abc import ABC, abstractmethod
from typing import Callable, Literal, Optional

ImageVariant = Literal["full", "thumbnail"]

# Receives the fraction of bytes written so far, may be called from a worker thread
ProgressCallback = Callable[[float], None]


class StorageBackend(ABC):
    """Abstract base class for image storage backends."""

    @abstractmethod
    def get_target_path(self, upload_id: str, user_id: str, variant: ImageVariant) -> str:
        """Generate target storage path.

        Args:
            upload_id: Queue item identifier
            user_id: Owner of the uploaded image
            variant: Full image or thumbnail

        Returns:
            Target path for the image
        """
        pass

    @abstractmethod
    async def store_image(
        self,
        upload_id: str,
        user_id: str,
        variant: ImageVariant,
        data: bytes,
        content_type: str = "image/jpeg",
        progress_callback: Optional[ProgressCallback] = None,
    ) -> str:
        """Store encoded image bytes.

        Args:
            upload_id: Queue item identifier
            user_id: Owner of the uploaded image
            variant: Full image or thumbnail
            data: Encoded image bytes
            content_type: MIME type
            progress_callback: Optional byte progress listener

        Returns:
            Final storage path or URI
        """
        pass

    @abstractmethod
    def get_backend_name(self) -> str:
        """Return backend identifier."""
        pass

    @staticmethod
    def _object_name(upload_id: str, user_id: str, variant: ImageVariant) -> str:
        suffix = "_thumb" if variant == "thumbnail" else ""
        return f"posts/{_sanitize_segment(user_id)}/{_sanitize_segment(upload_id)}{suffix}.jpg"


def _sanitize_segment(value: str) -> str:
    """Remove path traversal and dangerous characters."""
    safe = value.replace("../", "").replace("..\\", "")
    safe = safe.replace("/", "_").replace("\\", "_")
    safe = re.sub(r"[^a-zA-Z0-9._-]", "_", safe)
    return safe[:255]
