"""Post submission routes."""

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from orapost.api.dependencies import get_post_creation
from orapost.core.config import settings
from orapost.core.exceptions import AuthenticationError, ProcessingError, ValidationError
from orapost.models.post import SubmitPostsResponse
from orapost.services.post_creation import ImageDraft, PostCreationFlow

router = APIRouter(prefix="/api/v1", tags=["posts"])
logger = logging.getLogger(__name__)


def _split_interests(raw: str) -> list[str]:
    return [interest.strip() for interest in raw.split(",") if interest.strip()]


@router.post("/posts", response_model=SubmitPostsResponse, status_code=202)
async def submit_posts(
    images: list[UploadFile] = File(...),
    captions: list[str] = Form(default=[]),
    interests: list[str] = Form(default=[]),
    flow: PostCreationFlow = Depends(get_post_creation),
) -> SubmitPostsResponse:
    """Queue one post per image.

    ``captions`` and ``interests`` are matched to ``images`` by position;
    each ``interests`` entry is a comma-separated list of interest ids.
    Responds once the batch is queued, before any upload finishes.
    """
    if len(captions) > len(images) or len(interests) > len(images):
        raise HTTPException(status_code=400, detail="More captions or interests than images")

    drafts: list[ImageDraft] = []
    for index, image in enumerate(images):
        data = await image.read()
        if len(data) > settings.max_image_upload_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"Image {image.filename or index + 1} exceeds maximum allowed size of {settings.MAX_IMAGE_UPLOAD_MB}MB",
            )
        drafts.append(
            ImageDraft(
                image_data=data,
                caption=captions[index] if index < len(captions) else "",
                interests=_split_interests(interests[index]) if index < len(interests) else [],
                filename=image.filename,
            )
        )

    try:
        result = await flow.submit(drafts)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except ProcessingError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return SubmitPostsResponse(
        item_ids=result.item_ids,
        processed_count=result.processed_count,
        failed_count=result.failed_count,
        total_count=result.total_count,
    )
