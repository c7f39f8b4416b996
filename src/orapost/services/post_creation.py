"""Multi-image post submission: validate, process, enqueue."""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from orapost.core.exceptions import AuthenticationError, ProcessingError, ValidationError
from orapost.media.image_processor import ImageProcessor
from orapost.models.upload import UploadPayload
from orapost.services.auth import AuthSession
from orapost.services.upload_queue import UploadQueueService

logger = logging.getLogger(__name__)


@dataclass
class ImageDraft:
    """One picked image with the caption and interests typed for it."""

    image_data: bytes
    caption: str = ""
    interests: list[str] = field(default_factory=list)
    filename: Optional[str] = None

    @property
    def unique_interests(self) -> list[str]:
        """Non-blank interests, trimmed, first occurrence wins."""
        cleaned = (interest.strip() for interest in self.interests)
        return list(dict.fromkeys(interest for interest in cleaned if interest))


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of handing a batch to the upload queue."""

    item_ids: list[str]
    processed_count: int
    failed_count: int
    total_count: int


class PostCreationFlow:
    """Turns a compose-screen selection into queued uploads.

    ``submit`` returns as soon as the batch is enqueued; uploads keep
    running in the queue service.
    """

    def __init__(
        self,
        queue_service: UploadQueueService,
        image_processor: ImageProcessor,
        auth_session: AuthSession,
        min_interests: int = 1,
        max_interests: int = 5,
        max_images: int = 10,
    ):
        self.queue_service = queue_service
        self.image_processor = image_processor
        self.auth_session = auth_session
        self.min_interests = min_interests
        self.max_interests = max_interests
        self.max_images = max_images

    def validate(self, drafts: Sequence[ImageDraft]) -> None:
        """Pre-flight checks. Nothing is processed or enqueued when these fail.

        Raises:
            ValidationError: Empty or oversized selection, or bad interest counts
            AuthenticationError: No signed-in user
        """
        if not drafts:
            raise ValidationError("Please select at least one image")

        if len(drafts) > self.max_images:
            raise ValidationError(f"Please select at most {self.max_images} images")

        if not self.auth_session.is_authenticated:
            raise AuthenticationError("User not authenticated")

        invalid = [
            index
            for index, draft in enumerate(drafts)
            if not self.min_interests <= len(draft.unique_interests) <= self.max_interests
        ]
        if invalid:
            logger.info(
                "Submission rejected: interest count out of range",
                extra={"invalid_indexes": invalid, "image_count": len(drafts)},
            )
            raise ValidationError(
                f"Please add {self.min_interests}-{self.max_interests} tags to each image"
            )

    async def submit(self, drafts: Sequence[ImageDraft]) -> SubmissionResult:
        """Validate, process every image and enqueue the successful ones as one batch.

        Raises:
            ValidationError: See ``validate``
            AuthenticationError: See ``validate``
            ProcessingError: If no image could be processed
        """
        self.validate(drafts)

        payloads: list[UploadPayload] = []
        failed_count = 0

        for index, draft in enumerate(drafts):
            processed = await self.image_processor.process_image(draft.image_data)
            if processed is None:
                failed_count += 1
                logger.warning(
                    "Skipping image that failed to process",
                    extra={"index": index, "image_filename": draft.filename},
                )
                continue

            caption = draft.caption.strip() or None
            interests = draft.unique_interests
            payloads.append(
                UploadPayload(
                    image_data=processed.full_image_data,
                    thumbnail_data=processed.thumbnail_data,
                    image_width=processed.width,
                    image_height=processed.height,
                    title=caption,
                    description=caption,
                    tags=tuple(interests),
                    categories=tuple(interests),
                )
            )

        if not payloads:
            logger.error("No images could be processed", extra={"image_count": len(drafts)})
            raise ProcessingError("Failed to process images. Please try again.")

        item_ids = self.queue_service.enqueue(payloads)

        logger.info(
            "Post submission enqueued",
            extra={
                "enqueued_count": len(item_ids),
                "failed_count": failed_count,
                "image_count": len(drafts),
            },
        )
        return SubmissionResult(
            item_ids=item_ids,
            processed_count=len(payloads),
            failed_count=failed_count,
            total_count=len(drafts),
        )
