"""Tests for the image upload service."""

import asyncio

import pytest

from conftest import MemoryStorageBackend
from orapost.core.exceptions import StorageError, UploadError
from orapost.services.image_upload import ImageUploadService, UploadedImage


@pytest.mark.asyncio
async def test_uploads_full_image_and_thumbnail():
    backend = MemoryStorageBackend()
    service = ImageUploadService(backend)

    result = await service.upload_image_data("upload-1", b"f" * 300, b"t" * 100, "user-1")

    assert result == UploadedImage(
        image_url="memory://posts/user-1/upload-1.jpg",
        thumbnail_url="memory://posts/user-1/upload-1_thumb.jpg",
    )
    assert backend.objects[result.image_url] == b"f" * 300
    assert backend.objects[result.thumbnail_url] == b"t" * 100


@pytest.mark.asyncio
async def test_progress_is_combined_over_both_variants():
    """Progress is the share of all bytes sent, ending at 1."""
    backend = MemoryStorageBackend(steps=5)
    service = ImageUploadService(backend)
    progress = []

    await service.upload_image_data(
        "upload-1", b"f" * 300, b"t" * 100, "user-1", progress_callback=progress.append
    )

    assert progress == sorted(progress)
    assert progress[-1] == 1.0
    assert all(0.0 < value <= 1.0 for value in progress)


@pytest.mark.asyncio
async def test_storage_failure_raises_upload_error():
    backend = MemoryStorageBackend(fail_ids={"upload-1"})
    service = ImageUploadService(backend)

    with pytest.raises(UploadError, match="network error"):
        await service.upload_image_data("upload-1", b"f", b"t", "user-1")


class SlowThumbnailBackend(MemoryStorageBackend):
    """Full image fails at once; the thumbnail finishes later."""

    def __init__(self):
        super().__init__()
        self.thumbnail_cancelled = False

    async def store_image(
        self, upload_id, user_id, variant, data, content_type="image/jpeg", progress_callback=None
    ):
        if variant == "full":
            raise StorageError("network error")
        try:
            await asyncio.sleep(0.05)
        except asyncio.CancelledError:
            self.thumbnail_cancelled = True
            raise
        path = self.get_target_path(upload_id, user_id, variant)
        self.objects[path] = data
        return path


@pytest.mark.asyncio
async def test_failed_variant_cancels_the_other():
    """A failed full image stops the thumbnail store, leaving no orphaned object."""
    backend = SlowThumbnailBackend()
    service = ImageUploadService(backend)

    with pytest.raises(UploadError, match="network error"):
        await service.upload_image_data("u1", b"full", b"thumb", "user")

    assert backend.thumbnail_cancelled
    await asyncio.sleep(0.1)
    assert backend.objects == {}
