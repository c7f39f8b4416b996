"""Upload queue routes, the HTTP view of the queue card."""

from fastapi import APIRouter, Depends, HTTPException, Response

from orapost.api.dependencies import get_queue_service
from orapost.core.exceptions import InvalidStatusTransitionError, QueueItemNotFoundError
from orapost.models.post import QueueItemResponse, QueueResponse
from orapost.services.upload_queue import UploadQueueService

router = APIRouter(prefix="/api/v1/queue", tags=["queue"])


def _queue_response(queue: UploadQueueService) -> QueueResponse:
    return QueueResponse(
        summary=queue.status_summary(),
        active_count=queue.active_count,
        failed_count=queue.failed_count,
        items=[QueueItemResponse.from_item(item) for item in queue.items],
    )


@router.get("", response_model=QueueResponse)
async def list_queue(queue: UploadQueueService = Depends(get_queue_service)) -> QueueResponse:
    return _queue_response(queue)


@router.get("/{item_id}", response_model=QueueItemResponse)
async def get_queue_item(
    item_id: str, queue: UploadQueueService = Depends(get_queue_service)
) -> QueueItemResponse:
    try:
        return QueueItemResponse.from_item(queue.get(item_id))
    except QueueItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{item_id}/retry", response_model=QueueItemResponse)
async def retry_queue_item(
    item_id: str, queue: UploadQueueService = Depends(get_queue_service)
) -> QueueItemResponse:
    """Re-queue a failed upload."""
    try:
        return QueueItemResponse.from_item(queue.retry(item_id))
    except QueueItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStatusTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/{item_id}", status_code=204)
async def remove_queue_item(
    item_id: str, queue: UploadQueueService = Depends(get_queue_service)
) -> Response:
    """Dismiss an item, cancelling its upload if still running."""
    try:
        queue.remove(item_id)
    except QueueItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=204)


@router.post("/clear", response_model=QueueResponse)
async def clear_finished(queue: UploadQueueService = Depends(get_queue_service)) -> QueueResponse:
    """Drop completed and failed items."""
    queue.clear_finished()
    return _queue_response(queue)


@router.delete("", response_model=QueueResponse)
async def cancel_all(queue: UploadQueueService = Depends(get_queue_service)) -> QueueResponse:
    queue.cancel_all()
    return _queue_response(queue)
