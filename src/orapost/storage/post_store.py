"""In-memory store for created post records."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional


@dataclass
class PostRecord:
    """Post metadata written by the local post service."""

    post_id: str
    user_id: str
    image_url: str
    thumbnail_url: Optional[str]
    image_width: Optional[int]
    image_height: Optional[int]
    caption: Optional[str]
    interest_ids: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class PostStore:
    """In-memory store for post records."""

    def __init__(self):
        self._posts: Dict[str, PostRecord] = {}

    def create(self, record: PostRecord) -> None:
        """Store a new post record."""
        self._posts[record.post_id] = record

    def get(self, post_id: str) -> Optional[PostRecord]:
        """Retrieve a post record by post_id."""
        return self._posts.get(post_id)
