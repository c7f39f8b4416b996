"""Pytest configuration and shared fixtures."""

import asyncio
import io
from typing import Optional

import pytest
from PIL import Image

from orapost.core.exceptions import StorageError, UploadError
from orapost.models.upload import UploadPayload
from orapost.services.auth import AuthSession
from orapost.services.image_upload import ImageUploadService
from orapost.services.upload_queue import UploadQueueService
from orapost.storage.base import StorageBackend


def make_image_bytes(size=(64, 48), fmt="JPEG", color=(200, 30, 30), mode="RGB") -> bytes:
    """Encode a solid-colour test image."""
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def make_payload(title: Optional[str] = None, tags=("nature",)) -> UploadPayload:
    return UploadPayload(
        image_data=b"\xff\xd8full-image-bytes" * 64,
        thumbnail_data=b"\xff\xd8thumbnail" * 16,
        image_width=640,
        image_height=480,
        title=title,
        description=title,
        tags=tags,
        categories=tags,
    )


class MemoryStorageBackend(StorageBackend):
    """Storage backend that keeps objects in a dict and reports stepped progress."""

    def __init__(self, delay: float = 0.0, steps: int = 4, fail_ids=()):
        self.delay = delay
        self.steps = steps
        self.fail_ids = set(fail_ids)
        self.objects: dict[str, bytes] = {}
        self._in_flight: dict[str, int] = {}
        self.max_concurrent_uploads = 0

    def get_target_path(self, upload_id, user_id, variant):
        return f"memory://{self._object_name(upload_id, user_id, variant)}"

    async def store_image(
        self, upload_id, user_id, variant, data, content_type="image/jpeg", progress_callback=None
    ):
        self._in_flight[upload_id] = self._in_flight.get(upload_id, 0) + 1
        self.max_concurrent_uploads = max(self.max_concurrent_uploads, len(self._in_flight))
        try:
            for step in range(1, self.steps + 1):
                await asyncio.sleep(self.delay / self.steps)
                if progress_callback:
                    progress_callback(step / self.steps)
            if upload_id in self.fail_ids:
                raise StorageError("network error")
            path = self.get_target_path(upload_id, user_id, variant)
            self.objects[path] = data
            return path
        finally:
            self._in_flight[upload_id] -= 1
            if not self._in_flight[upload_id]:
                del self._in_flight[upload_id]

    def get_backend_name(self):
        return "memory"


class FakePostService:
    """Post service double. Fails or blocks for chosen upload ids."""

    def __init__(self):
        self.failures: dict[str, str] = {}
        self.gate: Optional[asyncio.Event] = None
        self.calls: list[dict] = []
        self._counter = 0

    def fail_for(self, upload_id: str, message: str) -> None:
        self.failures[upload_id] = message

    async def create_post(
        self,
        user_id,
        image_url,
        thumbnail_url,
        image_width,
        image_height,
        caption,
        interest_ids,
        id_token=None,
    ):
        if self.gate is not None:
            await self.gate.wait()
        for upload_id, message in self.failures.items():
            if upload_id in image_url:
                raise UploadError(message)
        self.calls.append(
            {
                "user_id": user_id,
                "image_url": image_url,
                "thumbnail_url": thumbnail_url,
                "image_width": image_width,
                "image_height": image_height,
                "caption": caption,
                "interest_ids": interest_ids,
                "id_token": id_token,
            }
        )
        self._counter += 1
        return f"post-{self._counter}"


@pytest.fixture
def storage_backend():
    return MemoryStorageBackend()


@pytest.fixture
def post_service():
    return FakePostService()


@pytest.fixture
def auth_session():
    return AuthSession(user_id="user-123", id_token="token-abc")


@pytest.fixture
def make_queue(storage_backend, post_service, auth_session):
    """Factory for queue services wired to the fakes."""

    def factory(**overrides) -> UploadQueueService:
        options = {
            "max_concurrent_uploads": 3,
            "upload_timeout_seconds": 5.0,
            "completed_retention_seconds": None,
            "progress_notify_threshold": 0.0,
        }
        options.update(overrides)
        return UploadQueueService(
            ImageUploadService(storage_backend),
            post_service,
            auth_session,
            **options,
        )

    return factory
