"""Request-scoped access to the services built at startup."""

from dataclasses import dataclass

from fastapi import Request

from orapost.services.auth import AuthSession
from orapost.services.post_creation import PostCreationFlow
from orapost.services.upload_queue import UploadQueueService


@dataclass
class AppServices:
    """Services owned by the application for its whole lifetime."""

    auth_session: AuthSession
    queue_service: UploadQueueService
    post_creation: PostCreationFlow


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def get_queue_service(request: Request) -> UploadQueueService:
    return get_services(request).queue_service


def get_auth_session(request: Request) -> AuthSession:
    return get_services(request).auth_session


def get_post_creation(request: Request) -> PostCreationFlow:
    return get_services(request).post_creation
