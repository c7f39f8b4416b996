"""Main application entrypoint for the Ora upload service."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from orapost.api.dependencies import AppServices
from orapost.api.middleware import HTTPErrorLoggingMiddleware
from orapost.api.v1 import routes_health
from orapost.api.v1.routes_auth import router as auth_router
from orapost.api.v1.routes_posts import router as posts_router
from orapost.api.v1.routes_queue import router as queue_router
from orapost.core.config import settings
from orapost.core.logging import setup_logging
from orapost.media.image_processor import ImageProcessor
from orapost.services.auth import AuthSession
from orapost.services.image_upload import ImageUploadService
from orapost.services.post_creation import PostCreationFlow
from orapost.services.posts import HttpPostService, LocalPostService, PostService
from orapost.services.upload_queue import UploadQueueService
from orapost.storage.factory import get_storage_backend

logger = logging.getLogger(__name__)


def build_services() -> AppServices:
    """Wire the upload pipeline from settings.

    Raises:
        ValueError: If the storage backend is misconfigured
    """
    post_service: PostService
    if settings.uses_remote_post_api:
        post_service = HttpPostService(settings.POST_API_URL, timeout=settings.POST_API_TIMEOUT)
    else:
        post_service = LocalPostService()

    auth_session = AuthSession()
    queue_service = UploadQueueService(
        ImageUploadService(get_storage_backend()),
        post_service,
        auth_session,
        max_concurrent_uploads=settings.MAX_CONCURRENT_UPLOADS,
        upload_timeout_seconds=settings.UPLOAD_TIMEOUT_SECONDS,
        completed_retention_seconds=settings.COMPLETED_RETENTION_SECONDS,
        progress_notify_threshold=settings.PROGRESS_NOTIFY_THRESHOLD,
        upload_progress_share=settings.UPLOAD_PROGRESS_SHARE,
    )
    post_creation = PostCreationFlow(
        queue_service,
        ImageProcessor(
            thumbnail_max_dimension=settings.THUMBNAIL_MAX_DIMENSION,
            full_image_max_dimension=settings.FULL_IMAGE_MAX_DIMENSION,
        ),
        auth_session,
        min_interests=settings.MIN_INTERESTS_PER_IMAGE,
        max_interests=settings.MAX_INTERESTS_PER_IMAGE,
        max_images=settings.MAX_IMAGES_PER_POST,
    )
    return AppServices(auth_session=auth_session, queue_service=queue_service, post_creation=post_creation)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Uploads belong to the app, not to the request that queued them."""
    services = build_services()
    app.state.services = services
    logger.info(
        "Upload pipeline started",
        extra={
            "storage_backend": settings.STORAGE_BACKEND,
            "remote_post_api": settings.uses_remote_post_api,
            "max_concurrent_uploads": settings.MAX_CONCURRENT_UPLOADS,
        },
    )
    try:
        yield
    finally:
        await services.queue_service.shutdown()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    setup_logging()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
    )
    app.add_middleware(HTTPErrorLoggingMiddleware)

    app.include_router(routes_health.router, tags=["health"])
    app.include_router(auth_router)
    app.include_router(posts_router)
    app.include_router(queue_router)

    return app


# Export app instance for ASGI servers
app = create_app()
