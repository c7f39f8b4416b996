"""HTTP request and response models for posts and the upload queue."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from orapost.models.upload import UploadQueueItem, status_name


class SessionRequest(BaseModel):
    """Request model for signing a user in."""

    user_id: str = Field(..., min_length=1, description="Authenticated user identifier")
    id_token: Optional[str] = Field(None, description="Bearer token forwarded to the post API")


class SessionResponse(BaseModel):
    """Response model for the current auth session."""

    authenticated: bool
    user_id: Optional[str] = None


class QueueItemResponse(BaseModel):
    """One upload queue item as seen by the queue card."""

    id: str
    status: Literal["pending", "uploading", "completed", "failed"]
    progress: float
    error_message: Optional[str] = None
    post_id: Optional[str] = None
    title: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    image_width: int
    image_height: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_item(cls, item: UploadQueueItem) -> "QueueItemResponse":
        return cls(
            id=item.id,
            status=status_name(item.status),
            progress=item.progress,
            error_message=item.error_message,
            post_id=item.post_id,
            title=item.payload.title,
            tags=list(item.payload.tags),
            image_width=item.payload.image_width,
            image_height=item.payload.image_height,
            created_at=item.payload.created_at,
            updated_at=item.updated_at,
        )


class QueueResponse(BaseModel):
    """Snapshot of the whole upload queue."""

    summary: str
    active_count: int
    failed_count: int
    items: list[QueueItemResponse]


class SubmitPostsResponse(BaseModel):
    """Response model for a multi-image post submission."""

    item_ids: list[str]
    processed_count: int
    failed_count: int
    total_count: int
