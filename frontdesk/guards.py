from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from .authn import MANAGER_ROLES, decode_session_token, get_user
from .config import settings
from .db import get_db
from .models import User


def _session_token(request: Request, authorization: Optional[str]) -> str | None:
    raw = (authorization or "").strip()
    if raw.lower().startswith("bearer "):
        token = raw[7:].strip()
        if token:
            return token
    return (request.cookies.get(settings.AUTH_SESSION_COOKIE) or "").strip() or None


def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> User | None:
    token = _session_token(request, authorization)
    if not token:
        return None
    identity = decode_session_token(token)
    if not identity:
        return None
    user = get_user(db, identity.user_id)
    if not user:
        return None
    return user


def require_user(user: User | None = Depends(get_current_user)) -> User:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user


def require_manager(user: User | None = Depends(get_current_user)) -> User:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    if user.role not in MANAGER_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


def staff_guard(user: User | None = Depends(get_current_user)) -> User | None:
    """Router-level gate for the front desk API, switchable with AUTH_REQUIRED."""
    if bool(settings.AUTH_REQUIRED) and user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user
