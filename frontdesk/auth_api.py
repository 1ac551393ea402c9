from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .authn import (
    ResetTokenError,
    authenticate_user,
    change_password,
    check_reset_token,
    create_reset_token,
    create_session_token,
    find_user_by_identifier,
    login_limiter,
    reset_password,
)
from .config import settings
from .db import get_db
from .guards import require_user
from .mailer import send_password_reset_email
from .models import User

router = APIRouter(prefix="/api/auth", tags=["auth"])
log = structlog.get_logger("frontdesk.auth")

FORGOT_PASSWORD_MESSAGE = "If an account with that information exists, a password reset email has been sent."


class LoginIn(BaseModel):
    username: str = Field(min_length=1, max_length=80)
    password: str = Field(min_length=1, max_length=200)
    remember_me: bool = False


class UserOut(BaseModel):
    id: str
    username: str
    email: Optional[str] = None
    full_name: str
    role: str
    requires_password_change: bool


class PasswordChangeIn(BaseModel):
    current_password: str = Field(min_length=1, max_length=200)
    new_password: str = Field(min_length=1, max_length=200)


class ForgotPasswordIn(BaseModel):
    identifier: str = Field(min_length=1, max_length=160)


class ResetPasswordIn(BaseModel):
    token: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=1, max_length=200)


class MessageOut(BaseModel):
    message: str


class TokenValidOut(BaseModel):
    valid: bool


def _to_user_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        username=user.username,
        email=user.email,
        full_name=user.full_name,
        role=user.role,
        requires_password_change=bool(user.requires_password_change),
    )


def _client_ip_from_request(request: Optional[Request]) -> str:
    if request is None:
        return "unknown"
    xff = (request.headers.get("x-forwarded-for") or "").strip()
    if xff:
        first = xff.split(",")[0].strip()
        if first:
            return first[:64]
    if request.client and request.client.host:
        return str(request.client.host)[:64]
    return "unknown"


@router.post("/login", response_model=UserOut)
def login(payload: LoginIn, request: Request, response: Response, db: Session = Depends(get_db)):
    client_ip = _client_ip_from_request(request)
    if login_limiter.is_limited(payload.username, client_ip):
        log.warning("login_rate_limited", username=payload.username, client_ip=client_ip)
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="Too many failed login attempts")

    user = authenticate_user(db, payload.username, payload.password)
    if not user:
        login_limiter.record_failure(payload.username, client_ip)
        log.info("login_failed", username=payload.username, client_ip=client_ip)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token, lifetime = create_session_token(user, remember_me=payload.remember_me)
    response.set_cookie(
        key=settings.AUTH_SESSION_COOKIE,
        value=token,
        max_age=lifetime if payload.remember_me else None,
        httponly=True,
        secure=bool(settings.AUTH_COOKIE_SECURE),
        samesite="lax",
        path="/",
    )
    login_limiter.clear(payload.username, client_ip)
    log.info("login_succeeded", user_id=user.id, role=user.role, remember_me=payload.remember_me)
    return _to_user_out(user)


@router.post("/logout", response_model=MessageOut)
def logout(response: Response):
    response.delete_cookie(settings.AUTH_SESSION_COOKIE, path="/")
    return MessageOut(message="Logged out successfully")


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(require_user)):
    return _to_user_out(user)


@router.post("/change-password", response_model=MessageOut)
def change_password_endpoint(
    payload: PasswordChangeIn,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    try:
        change_password(db, user, payload.current_password, payload.new_password)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    log.info("password_changed", user_id=user.id)
    return MessageOut(message="Password updated successfully")


@router.post("/forgot-password", response_model=MessageOut)
def forgot_password(payload: ForgotPasswordIn, db: Session = Depends(get_db)):
    user = find_user_by_identifier(db, payload.identifier)
    if not user:
        log.info("password_reset_requested", outcome="unknown_identifier")
        return MessageOut(message=FORGOT_PASSWORD_MESSAGE)
    if not user.email:
        log.info("password_reset_requested", outcome="no_email_on_file", user_id=user.id)
        return MessageOut(message=FORGOT_PASSWORD_MESSAGE)

    token = create_reset_token(db, user)
    reset_url = f"{settings.APP_BASE_URL}/reset-password?token={token.token}"
    try:
        send_password_reset_email(user.email, user.full_name, reset_url)
    except Exception as exc:
        log.error(
            "password_reset_email_failed",
            user_id=user.id,
            error=str(exc),
            error_type=type(exc).__name__,
            reset_url=reset_url,
        )
    else:
        log.info("password_reset_requested", outcome="email_sent", user_id=user.id)
    return MessageOut(message=FORGOT_PASSWORD_MESSAGE)


@router.get("/verify-reset-token/{token}", response_model=TokenValidOut)
def verify_reset_token(token: str, db: Session = Depends(get_db)):
    try:
        check_reset_token(db, token)
    except ResetTokenError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc))
    return TokenValidOut(valid=True)


@router.post("/reset-password", response_model=MessageOut)
def reset_password_endpoint(payload: ResetPasswordIn, db: Session = Depends(get_db)):
    try:
        user = reset_password(db, payload.token, payload.new_password)
    except ResetTokenError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    log.info("password_reset_completed", user_id=user.id)
    return MessageOut(message="Password reset successfully")
