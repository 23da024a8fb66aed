from fastapi import APIRouter, Depends, Header, HTTPException
from typing import Dict, Optional
import time
import secrets

from loguru import logger

from ..core.config import get_settings
from ..domain.models import Session
from .. import deps
from ..domain.stores import InMemoryUserStore, verify_password
from .schemas import AuthenticationRequest

router = APIRouter()

# token -> {"session": Session, "expires_at": float}
issued_sessions: Dict[str, Dict] = {}


def _generate_token() -> str:
    """
    Generate a cryptographically strong opaque bearer token.
    """
    return "bearer " + secrets.token_urlsafe(32)


def _now() -> float:
    return time.time()


def open_session(session: Session) -> str:
    """Issue a token for an already identified caller."""
    token = _generate_token()
    issued_sessions[token] = {
        "session": session,
        "expires_at": _now() + get_settings().SESSION_TTL_SECONDS,
    }
    return token


def close_session(token: str) -> None:
    issued_sessions.pop(token, None)


def lookup_session(token: str) -> Session:
    """
    Return the Session behind a token or raise HTTPException(401)
    if the token is unknown or expired.
    """
    info = issued_sessions.get(token)
    if not info:
        raise HTTPException(status_code=401, detail="Invalid or missing token.")

    if info["expires_at"] <= _now():
        issued_sessions.pop(token, None)
        raise HTTPException(status_code=401, detail="Token has expired.")

    return info["session"]


def require_session(
    x_authorization: Optional[str] = Header(default=None, alias="X-Authorization"),
) -> Session:
    """
    FastAPI dependency resolving the caller from the X-Authorization header.
    """
    if not x_authorization:
        raise HTTPException(status_code=401, detail="X-Authorization header required.")
    return lookup_session(x_authorization)


@router.put("/authenticate", response_model=str)
def authenticate(
    auth_request: AuthenticationRequest,
    users: InMemoryUserStore = Depends(deps.get_user_store),
) -> str:
    """
    Exchange a username and password for a session token.

    - 200: the token string
    - 401: unknown user, wrong password, or inactive account
    """
    user = users.get_user_by_name(auth_request.username)
    if (
        user is None
        or user.user_status != "active"
        or not user.user_pass
        or not verify_password(auth_request.password, user.user_pass)
    ):
        raise HTTPException(status_code=401, detail="Invalid username or password.")

    token = open_session(
        Session(user_id=user.user_pk, group_id=user.group_fk, user_perm=user.user_perm)
    )
    logger.info("Opened session for user {}", user.user_pk)
    return token
