"""Post creation clients used by the upload queue."""

import logging
from typing import Optional, Protocol
from uuid import uuid4

import httpx

from orapost.core.exceptions import UploadError
from orapost.storage.post_store import PostRecord, PostStore

logger = logging.getLogger(__name__)

# Friendly messages for post API failures, keyed by HTTP status
_STATUS_MESSAGES = {
    401: "Authentication failed. Please sign in again.",
    403: "Permission denied. Please sign in again.",
    404: "Function not found. Please contact support.",
    409: "Post already exists.",
    503: "Service temporarily unavailable. Please check your internet connection and try again.",
    504: "Request timed out. Please try again.",
}


class PostService(Protocol):
    """Creates a post once its image has been uploaded."""

    async def create_post(
        self,
        user_id: str,
        image_url: str,
        thumbnail_url: Optional[str],
        image_width: Optional[int],
        image_height: Optional[int],
        caption: Optional[str],
        interest_ids: Optional[list[str]],
        id_token: Optional[str] = None,
    ) -> str:
        """Create the post and return its identifier."""
        ...


def _build_request(
    image_url: str,
    thumbnail_url: Optional[str],
    image_width: Optional[int],
    image_height: Optional[int],
    caption: Optional[str],
    interest_ids: Optional[list[str]],
) -> dict:
    payload: dict = {"imageUrl": image_url}
    if thumbnail_url is not None:
        payload["thumbnailUrl"] = thumbnail_url
    if image_width is not None:
        payload["imageWidth"] = image_width
    if image_height is not None:
        payload["imageHeight"] = image_height
    if caption is not None:
        payload["caption"] = caption
    if interest_ids is not None:
        payload["interestIds"] = interest_ids
    return payload


class HttpPostService:
    """Calls the remote post creation API."""

    def __init__(self, base_url: str, timeout: float = 30, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def create_post(
        self,
        user_id: str,
        image_url: str,
        thumbnail_url: Optional[str],
        image_width: Optional[int],
        image_height: Optional[int],
        caption: Optional[str],
        interest_ids: Optional[list[str]],
        id_token: Optional[str] = None,
    ) -> str:
        """
        Create a post through the remote API.

        Args:
            user_id: Author of the post
            image_url: Uploaded full image location
            thumbnail_url: Uploaded thumbnail location
            image_width: Full image width in pixels
            image_height: Full image height in pixels
            caption: Optional caption
            interest_ids: Interest tags attached to the post
            id_token: Bearer token of the signed-in user

        Returns:
            Identifier of the created post

        Raises:
            UploadError: With a user-facing message if the call fails
        """
        payload = _build_request(image_url, thumbnail_url, image_width, image_height, caption, interest_ids)
        headers = {"X-User-Id": user_id}
        if id_token:
            headers["Authorization"] = f"Bearer {id_token}"

        logger.info(
            "Creating post via post API",
            extra={
                "user_id": user_id,
                "image_url": image_url,
                "interest_count": len(interest_ids or []),
            },
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(f"{self.base_url}/api/posts", json=payload, headers=headers)
                response.raise_for_status()
                result = response.json()

        except httpx.TimeoutException as e:
            logger.warning("Post API timeout", extra={"user_id": user_id, "timeout": self.timeout})
            raise UploadError(_STATUS_MESSAGES[504]) from e

        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            message = _STATUS_MESSAGES.get(status_code) or _extract_error_message(e.response)
            logger.error(
                "Post API call failed",
                extra={"user_id": user_id, "status_code": status_code, "error": message},
            )
            raise UploadError(message) from e

        except httpx.HTTPError as e:
            logger.error("Post API unreachable", extra={"user_id": user_id, "error": str(e)})
            raise UploadError(_STATUS_MESSAGES[503]) from e

        except ValueError as e:
            raise UploadError("Invalid response from post service") from e

        post_id = result.get("postId") if isinstance(result, dict) else None
        if not post_id:
            raise UploadError("Invalid response from post service")

        logger.info("Post created", extra={"user_id": user_id, "post_id": post_id})
        return str(post_id)


def _extract_error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        message = body.get("error") or body.get("message") or body.get("detail")
        if isinstance(message, str) and message:
            return message
    return f"Failed to create post (HTTP {response.status_code})"


class LocalPostService:
    """Records posts in an in-memory store when no post API is configured."""

    def __init__(self, post_store: Optional[PostStore] = None):
        self.post_store = post_store or PostStore()

    async def create_post(
        self,
        user_id: str,
        image_url: str,
        thumbnail_url: Optional[str],
        image_width: Optional[int],
        image_height: Optional[int],
        caption: Optional[str],
        interest_ids: Optional[list[str]],
        id_token: Optional[str] = None,
    ) -> str:
        post_id = str(uuid4())
        self.post_store.create(
            PostRecord(
                post_id=post_id,
                user_id=user_id,
                image_url=image_url,
                thumbnail_url=thumbnail_url,
                image_width=image_width,
                image_height=image_height,
                caption=caption,
                interest_ids=list(interest_ids or []),
            )
        )
        logger.info("Post recorded locally", extra={"user_id": user_id, "post_id": post_id})
        return post_id
