"""Upload queue data models."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Literal, Optional, Union
from uuid import uuid4


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Pending:
    """Queued, waiting for a free upload slot."""


@dataclass(frozen=True)
class Uploading:
    """Upload in flight. ``progress`` is a fraction in [0, 1]."""

    progress: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.progress <= 1.0:
            raise ValueError(f"progress must be within [0, 1], got {self.progress}")


@dataclass(frozen=True)
class Completed:
    """Post created. Terminal."""


@dataclass(frozen=True)
class Failed:
    """Upload or post creation failed with a user-facing message."""

    error: str


UploadStatus = Union[Pending, Uploading, Completed, Failed]

StatusName = Literal["pending", "uploading", "completed", "failed"]


def status_name(status: UploadStatus) -> StatusName:
    """Return the wire name of a status."""
    match status:
        case Pending():
            return "pending"
        case Uploading():
            return "uploading"
        case Completed():
            return "completed"
        case Failed():
            return "failed"
    raise TypeError(f"Unknown upload status: {status!r}")


def is_terminal(status: UploadStatus) -> bool:
    """Completed and failed items receive no further worker updates."""
    return isinstance(status, (Completed, Failed))


def is_active(status: UploadStatus) -> bool:
    return isinstance(status, (Pending, Uploading))


def can_transition(current: UploadStatus, new: UploadStatus) -> bool:
    """Check a status change against the queue state machine.

    pending -> uploading(0..1) -> completed
                               -> failed -> pending (manual retry)

    ``pending -> failed`` covers workers that give up before starting the
    transfer. Progress never moves backwards.
    """
    match current, new:
        case Pending(), Uploading():
            return True
        case Pending(), Failed():
            return True
        case Uploading(progress=old), Uploading(progress=updated):
            return updated >= old
        case Uploading(), Completed() | Failed():
            return True
        case Failed(), Pending():
            return True
    return False


@dataclass(frozen=True)
class UploadPayload:
    """Encoded image bytes and post metadata submitted for upload."""

    image_data: bytes
    thumbnail_data: bytes
    image_width: int
    image_height: int
    title: Optional[str] = None
    description: Optional[str] = None
    tags: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        # Lists are accepted for convenience but stored as tuples
        object.__setattr__(self, "tags", tuple(self.tags))
        object.__setattr__(self, "categories", tuple(self.categories))

    @property
    def interest_ids(self) -> list[str]:
        """Tags and categories merged, first occurrence wins."""
        return list(dict.fromkeys(self.tags + self.categories))

    @property
    def caption(self) -> Optional[str]:
        return self.description or self.title

    def __repr__(self) -> str:
        return (
            f"UploadPayload(id={self.id!r}, image_bytes={len(self.image_data)}, "
            f"thumbnail_bytes={len(self.thumbnail_data)}, "
            f"size={self.image_width}x{self.image_height}, tags={self.tags!r})"
        )


@dataclass
class UploadQueueItem:
    """A payload paired with its current upload status.

    Only the queue service mutates ``status``; observers receive snapshots.
    """

    payload: UploadPayload
    status: UploadStatus = field(default_factory=Pending)
    error_message: Optional[str] = None
    post_id: Optional[str] = None
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def id(self) -> str:
        return self.payload.id

    @property
    def progress(self) -> float:
        match self.status:
            case Uploading(progress=progress):
                return progress
            case Completed():
                return 1.0
        return 0.0

    def snapshot(self) -> "UploadQueueItem":
        """Shallow copy; the payload and status are immutable."""
        return replace(self)


QueueEventKind = Literal["added", "updated", "removed"]


@dataclass(frozen=True)
class QueueEvent:
    """Change notification delivered to queue observers."""

    kind: QueueEventKind
    item: UploadQueueItem
