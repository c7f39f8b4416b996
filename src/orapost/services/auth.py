"""Authenticated user context for the upload pipeline."""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class AuthSession:
    """The signed-in user of the running app.

    One session per process; the post creation flow and the upload
    workers read it to attribute created posts.
    """

    def __init__(self, user_id: Optional[str] = None, id_token: Optional[str] = None):
        self._user_id = user_id or None
        self._id_token = id_token

    @property
    def current_user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def id_token(self) -> Optional[str]:
        return self._id_token

    @property
    def is_authenticated(self) -> bool:
        return self._user_id is not None

    def sign_in(self, user_id: str, id_token: Optional[str] = None) -> None:
        if not user_id or not user_id.strip():
            raise ValueError("user_id is required")
        self._user_id = user_id.strip()
        self._id_token = id_token
        logger.info("User signed in", extra={"user_id": self._user_id})

    def sign_out(self) -> None:
        if self._user_id:
            logger.info("User signed out", extra={"user_id": self._user_id})
        self._user_id = None
        self._id_token = None
