"""Uploads queue payload images to the configured storage backend."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional

from orapost.core.exceptions import StorageError, UploadError
from orapost.storage.base import ProgressCallback, StorageBackend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedImage:
    """Storage locations of an uploaded image pair."""

    image_url: str
    thumbnail_url: str


class ImageUploadService:
    """Stores the full image and its thumbnail in parallel."""

    def __init__(self, backend: StorageBackend):
        self.backend = backend

    async def upload_image_data(
        self,
        upload_id: str,
        image_data: bytes,
        thumbnail_data: bytes,
        user_id: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> UploadedImage:
        """Upload both variants and report combined byte progress.

        Raises:
            UploadError: If either variant cannot be stored
        """
        total_bytes = len(image_data) + len(thumbnail_data)
        sent = {"full": 0.0, "thumbnail": 0.0}

        def variant_progress(variant: str, size: int) -> ProgressCallback:
            def report(fraction: float) -> None:
                sent[variant] = fraction * size
                if progress_callback and total_bytes:
                    progress_callback(min((sent["full"] + sent["thumbnail"]) / total_bytes, 1.0))

            return report

        logger.info(
            "Starting image upload",
            extra={
                "user_id": user_id,
                "backend": self.backend.get_backend_name(),
                "image_mb": round(len(image_data) / (1024 * 1024), 2),
                "thumbnail_mb": round(len(thumbnail_data) / (1024 * 1024), 2),
            },
        )
        start_time = time.time()

        stores = [
            asyncio.ensure_future(
                self.backend.store_image(
                    upload_id,
                    user_id,
                    "full",
                    image_data,
                    progress_callback=variant_progress("full", len(image_data)),
                )
            ),
            asyncio.ensure_future(
                self.backend.store_image(
                    upload_id,
                    user_id,
                    "thumbnail",
                    thumbnail_data,
                    progress_callback=variant_progress("thumbnail", len(thumbnail_data)),
                )
            ),
        ]

        try:
            image_url, thumbnail_url = await self._wait_all(stores)
        except (StorageError, OSError, ValueError) as e:
            logger.error("Image upload failed", extra={"user_id": user_id, "error": str(e)}, exc_info=True)
            raise UploadError(f"Image upload failed: {e}") from e
        except Exception as e:
            # google-cloud-storage surfaces transport failures as its own exception types
            logger.error("Image upload failed", extra={"user_id": user_id, "error": str(e)}, exc_info=True)
            raise UploadError("Image upload failed. Please try again.") from e

        logger.info(
            "Image upload completed",
            extra={
                "user_id": user_id,
                "duration_ms": int((time.time() - start_time) * 1000),
                "image_url": image_url,
                "thumbnail_url": thumbnail_url,
            },
        )
        return UploadedImage(image_url=image_url, thumbnail_url=thumbnail_url)

    @staticmethod
    async def _wait_all(stores: list[asyncio.Future]) -> list[str]:
        """Wait for every store; a failure cancels and drains the others."""
        try:
            return await asyncio.gather(*stores)
        except BaseException:
            for store in stores:
                store.cancel()
            await asyncio.gather(*stores, return_exceptions=True)
            raise
