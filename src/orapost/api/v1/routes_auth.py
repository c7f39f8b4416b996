"""Sign-in session routes."""

from fastapi import APIRouter, Depends, HTTPException

from orapost.api.dependencies import get_auth_session
from orapost.models.post import SessionRequest, SessionResponse
from orapost.services.auth import AuthSession

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _session_response(session: AuthSession) -> SessionResponse:
    return SessionResponse(authenticated=session.is_authenticated, user_id=session.current_user_id)


@router.get("/session", response_model=SessionResponse)
async def get_session(session: AuthSession = Depends(get_auth_session)) -> SessionResponse:
    return _session_response(session)


@router.post("/session", response_model=SessionResponse)
async def sign_in(
    request: SessionRequest, session: AuthSession = Depends(get_auth_session)
) -> SessionResponse:
    """Sign a user in; uploads are attributed to this user."""
    try:
        session.sign_in(request.user_id, request.id_token)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _session_response(session)


@router.delete("/session", response_model=SessionResponse)
async def sign_out(session: AuthSession = Depends(get_auth_session)) -> SessionResponse:
    session.sign_out()
    return _session_response(session)
