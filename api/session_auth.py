"""Session authentication — opaque token → Redis ``session:<token>`` record."""

import json
import logging

from fastapi import HTTPException, Request
from pydantic import BaseModel, ValidationError

from src.core.db import redis

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Session-Token"
SESSION_COOKIE = "session_id"


class SessionUser(BaseModel):
    """Mailbox owner of the current request."""

    user_id: str
    email: str = ""
    access_token: str


def session_token(request: Request) -> str:
    return request.headers.get(SESSION_HEADER, "") or request.cookies.get(SESSION_COOKIE, "")


async def require_session(request: Request) -> SessionUser:
    """Resolve the session user or raise 401."""
    token = session_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        raw = await redis.get(f"session:{token}")
    except Exception as e:
        logger.warning("Session lookup failed: %s", e)
        raise HTTPException(status_code=401, detail="Session unavailable")
    if not raw:
        raise HTTPException(status_code=401, detail="Session expired")

    try:
        return SessionUser.model_validate(json.loads(raw))
    except (ValueError, ValidationError):
        logger.warning("Malformed session record for token %s…", token[:6])
        raise HTTPException(status_code=401, detail="Invalid session")
