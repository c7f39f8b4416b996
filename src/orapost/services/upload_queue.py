"""Upload queue: drives each queued post through upload and creation."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from orapost.core.exceptions import (
    InvalidStatusTransitionError,
    QueueItemNotFoundError,
    UploadError,
)
from orapost.core.logging import upload_id_context
from orapost.models.upload import (
    Completed,
    Failed,
    Pending,
    QueueEvent,
    QueueEventKind,
    UploadPayload,
    UploadQueueItem,
    UploadStatus,
    Uploading,
    can_transition,
    is_active,
    status_name,
)
from orapost.services.auth import AuthSession
from orapost.services.image_upload import ImageUploadService
from orapost.services.posts import PostService

logger = logging.getLogger(__name__)

QueueObserver = Callable[[QueueEvent], None]


class UploadQueueService:
    """Owns the ordered upload queue and the workers that drain it.

    Every mutation of the queue happens on the event loop the service was
    first used from. Workers run as tasks on that loop; storage progress
    arriving from worker threads is handed back with
    ``call_soon_threadsafe``. Observers are called synchronously on the
    loop with a snapshot of the changed item.

    Item lifecycle::

        pending -> uploading(progress) -> completed
                                       -> failed -> pending (retry)

    Failures stay on their item. Nothing raised by the image upload or the
    post service escapes a worker.
    """

    def __init__(
        self,
        image_upload_service: ImageUploadService,
        post_service: PostService,
        auth_session: AuthSession,
        *,
        max_concurrent_uploads: int = 3,
        upload_timeout_seconds: Optional[float] = 120.0,
        completed_retention_seconds: Optional[float] = 2.0,
        progress_notify_threshold: float = 0.05,
        upload_progress_share: float = 0.7,
    ):
        if max_concurrent_uploads < 1:
            raise ValueError("max_concurrent_uploads must be at least 1")
        if not 0.0 <= upload_progress_share <= 1.0:
            raise ValueError("upload_progress_share must be within [0, 1]")

        self._image_upload_service = image_upload_service
        self._post_service = post_service
        self._auth_session = auth_session

        self.max_concurrent_uploads = max_concurrent_uploads
        self.upload_timeout_seconds = upload_timeout_seconds
        self.completed_retention_seconds = completed_retention_seconds
        self.progress_notify_threshold = progress_notify_threshold
        self.upload_progress_share = upload_progress_share

        self._items: list[UploadQueueItem] = []
        self._observers: list[QueueObserver] = []
        self._upload_tasks: dict[str, asyncio.Task] = {}
        self._retention_tasks: set[asyncio.Task] = set()
        # Bumped on every (re)start so late progress from an abandoned attempt is ignored
        self._attempts: dict[str, int] = {}
        self._semaphore = asyncio.Semaphore(max_concurrent_uploads)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._closed = False

    # Observation

    @property
    def items(self) -> tuple[UploadQueueItem, ...]:
        """Queue items in enqueue order."""
        return tuple(item.snapshot() for item in self._items)

    def get(self, item_id: str) -> UploadQueueItem:
        return self._require(item_id).snapshot()

    def subscribe(self, observer: QueueObserver) -> Callable[[], None]:
        """Register a change observer. Returns a callable that unsubscribes it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    @property
    def active_count(self) -> int:
        return sum(1 for item in self._items if is_active(item.status))

    @property
    def failed_count(self) -> int:
        return sum(1 for item in self._items if isinstance(item.status, Failed))

    def status_summary(self) -> str:
        """One-line queue status for the queue card header."""
        if self.active_count:
            return f"{self.active_count} uploading"
        if self.failed_count:
            return f"{self.failed_count} failed"
        return f"{len(self._items)} in queue"

    # Mutation (event loop only)

    def enqueue(self, payloads: Iterable[UploadPayload]) -> list[str]:
        """Append one pending item per payload and start their workers.

        Returns immediately; uploads continue in the background.

        Returns:
            Ids of the new queue items, in the order given
        """
        self._bind_loop()
        if self._closed:
            raise RuntimeError("Upload queue is shut down")

        payloads = list(payloads)
        known_ids = {item.id for item in self._items}
        new_ids = [payload.id for payload in payloads]
        if len(set(new_ids)) != len(new_ids) or known_ids.intersection(new_ids):
            raise ValueError("Payload ids must be unique within the queue")

        new_items = [UploadQueueItem(payload=payload) for payload in payloads]
        self._items.extend(new_items)

        for item in new_items:
            self._notify("added", item)
            self._start_worker(item.id)

        logger.info(
            "Enqueued items",
            extra={
                "enqueued_count": len(new_items),
                "queue_size": len(self._items),
                "active_count": self.active_count,
            },
        )
        return new_ids

    def retry(self, item_id: str) -> UploadQueueItem:
        """Move a failed item back to pending and upload it again.

        Raises:
            QueueItemNotFoundError: If the item is not queued
            InvalidStatusTransitionError: If the item has not failed
        """
        self._bind_loop()
        if self._closed:
            raise RuntimeError("Upload queue is shut down")

        item = self._require(item_id)
        if not isinstance(item.status, Failed):
            raise InvalidStatusTransitionError(
                f"Only failed uploads can be retried (item is {status_name(item.status)})"
            )

        self._set_status(item, Pending())
        logger.info("Retrying upload", extra={"upload_id": item_id})
        self._start_worker(item_id)
        return item.snapshot()

    def remove(self, item_id: str) -> None:
        """Drop an item, cancelling its upload if one is in flight."""
        self._bind_loop()
        item = self._require(item_id)

        task = self._upload_tasks.pop(item_id, None)
        if task is not None and not task.done():
            logger.info("Cancelling active upload", extra={"upload_id": item_id})
            task.cancel()

        self._remove_item(item)

    def clear_finished(self) -> int:
        """Remove completed and failed items. Returns how many were removed."""
        self._bind_loop()
        finished = [item for item in self._items if not is_active(item.status)]
        for item in finished:
            self._remove_item(item)
        return len(finished)

    def cancel_all(self) -> None:
        """Cancel every upload and empty the queue."""
        self._bind_loop()
        logger.info("Cancelling all uploads", extra={"queue_size": len(self._items)})

        for task in list(self._upload_tasks.values()) + list(self._retention_tasks):
            task.cancel()
        self._upload_tasks.clear()
        self._retention_tasks.clear()

        for item in list(self._items):
            self._remove_item(item)

    async def wait_until_idle(self) -> None:
        """Wait until no upload worker is running."""
        while self._upload_tasks:
            await asyncio.gather(*list(self._upload_tasks.values()), return_exceptions=True)
            # Let done callbacks unregister finished workers
            await asyncio.sleep(0)

    async def shutdown(self) -> None:
        """Stop accepting work and cancel everything still running."""
        self._closed = True
        tasks = list(self._upload_tasks.values()) + list(self._retention_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._upload_tasks.clear()
        self._retention_tasks.clear()
        logger.info("Upload queue shut down", extra={"queue_size": len(self._items)})

    # Workers

    def _start_worker(self, item_id: str) -> None:
        loop = self._bind_loop()
        self._attempts[item_id] = self._attempts.get(item_id, 0) + 1
        task = loop.create_task(self._process_item(item_id), name=f"upload-{item_id}")
        self._upload_tasks[item_id] = task
        task.add_done_callback(lambda finished, item_id=item_id: self._on_worker_done(item_id, finished))

    def _on_worker_done(self, item_id: str, task: asyncio.Task) -> None:
        if self._upload_tasks.get(item_id) is task:
            del self._upload_tasks[item_id]
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Upload worker crashed",
                extra={"upload_id": item_id},
                exc_info=task.exception(),
            )

    async def _process_item(self, item_id: str) -> None:
        upload_id_context.set(item_id)

        async with self._semaphore:
            item = self._find(item_id)
            if item is None or not isinstance(item.status, Pending):
                return

            attempt = self._attempts[item_id]
            logger.info("Processing item", extra={"upload_id": item_id, "attempt": attempt})
            self._set_status(item, Uploading(0.0))

            user_id = self._auth_session.current_user_id
            if not user_id:
                logger.error("User not authenticated", extra={"upload_id": item_id})
                self._fail(item_id, "User not authenticated")
                return

            try:
                post_id = await asyncio.wait_for(
                    self._upload_and_create_post(item_id, attempt, item.payload, user_id),
                    timeout=self.upload_timeout_seconds,
                )
            except asyncio.TimeoutError:
                logger.error(
                    "Upload timed out",
                    extra={"upload_id": item_id, "timeout_seconds": self.upload_timeout_seconds},
                )
                self._fail(item_id, f"Upload timed out after {self.upload_timeout_seconds:g} seconds")
            except UploadError as e:
                logger.error("Upload failed", extra={"upload_id": item_id, "error": str(e)})
                self._fail(item_id, str(e))
            except Exception as e:
                logger.error(
                    "Upload failed with unexpected error",
                    extra={"upload_id": item_id, "error": str(e), "error_type": type(e).__name__},
                    exc_info=True,
                )
                self._fail(item_id, str(e) or type(e).__name__)
            else:
                self._complete(item_id, post_id)

    async def _upload_and_create_post(
        self, item_id: str, attempt: int, payload: UploadPayload, user_id: str
    ) -> str:
        loop = self._bind_loop()
        share = self.upload_progress_share

        def on_progress(fraction: float) -> None:
            if not loop.is_closed():
                loop.call_soon_threadsafe(self._apply_progress, item_id, attempt, fraction * share)

        uploaded = await self._image_upload_service.upload_image_data(
            upload_id=item_id,
            image_data=payload.image_data,
            thumbnail_data=payload.thumbnail_data,
            user_id=user_id,
            progress_callback=on_progress,
        )
        self._apply_progress(item_id, attempt, share, force=True)

        logger.info("Creating post", extra={"upload_id": item_id, "user_id": user_id})
        return await self._post_service.create_post(
            user_id=user_id,
            image_url=uploaded.image_url,
            thumbnail_url=uploaded.thumbnail_url,
            image_width=payload.image_width,
            image_height=payload.image_height,
            caption=payload.caption,
            interest_ids=payload.interest_ids,
            id_token=self._auth_session.id_token,
        )

    def _apply_progress(self, item_id: str, attempt: int, progress: float, force: bool = False) -> None:
        item = self._find(item_id)
        if item is None or self._attempts.get(item_id) != attempt:
            return
        if not isinstance(item.status, Uploading):
            # Late report after the item reached a terminal state
            return

        current = item.status.progress
        progress = min(max(progress, current), 1.0)
        if progress == current:
            return
        if not force and progress - current < self.progress_notify_threshold:
            return
        self._set_status(item, Uploading(progress))

    def _complete(self, item_id: str, post_id: str) -> None:
        item = self._find(item_id)
        if item is None:
            return
        item.post_id = post_id
        self._set_status(item, Completed())
        logger.info("Upload completed", extra={"upload_id": item_id, "post_id": post_id})

        if self.completed_retention_seconds is not None:
            task = self._bind_loop().create_task(self._remove_after(item_id, self.completed_retention_seconds))
            self._retention_tasks.add(task)
            task.add_done_callback(self._retention_tasks.discard)

    def _fail(self, item_id: str, message: str) -> None:
        item = self._find(item_id)
        if item is not None:
            self._set_status(item, Failed(error=message))

    async def _remove_after(self, item_id: str, delay: float) -> None:
        await asyncio.sleep(delay)
        item = self._find(item_id)
        if item is not None and isinstance(item.status, Completed):
            self._remove_item(item)

    # Helpers

    def _bind_loop(self) -> asyncio.AbstractEventLoop:
        loop = asyncio.get_running_loop()
        if self._loop is None:
            self._loop = loop
        elif self._loop is not loop:
            raise RuntimeError("UploadQueueService used from a different event loop")
        return loop

    def _find(self, item_id: str) -> Optional[UploadQueueItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def _require(self, item_id: str) -> UploadQueueItem:
        item = self._find(item_id)
        if item is None:
            raise QueueItemNotFoundError(f"Upload {item_id} is not in the queue")
        return item

    def _set_status(self, item: UploadQueueItem, status: UploadStatus) -> None:
        if not can_transition(item.status, status):
            raise InvalidStatusTransitionError(
                f"Cannot move upload {item.id} from {status_name(item.status)} to {status_name(status)}"
            )

        item.status = status
        item.updated_at = datetime.now(timezone.utc)
        if isinstance(status, Failed):
            item.error_message = status.error
        elif isinstance(status, Pending):
            item.error_message = None
        self._notify("updated", item)

    def _remove_item(self, item: UploadQueueItem) -> None:
        for index, existing in enumerate(self._items):
            if existing is item:
                del self._items[index]
                self._attempts.pop(item.id, None)
                self._notify("removed", item)
                return

    def _notify(self, kind: QueueEventKind, item: UploadQueueItem) -> None:
        event = QueueEvent(kind=kind, item=item.snapshot())
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception:
                logger.exception("Queue observer raised", extra={"upload_id": item.id, "event": kind})
