import re
import secrets
from collections import defaultdict, deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from .config import settings
from .models import PasswordResetToken, User, utc_now_naive

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ROLES = {"admin", "manager", "agent"}
MANAGER_ROLES = {"admin", "manager"}


@dataclass
class SessionIdentity:
    user_id: str
    username: str
    role: str


class ResetTokenError(Exception):
    """Reset token is unusable. ``status_code`` is 404 when unknown, 400 when used or expired."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        return False


def validate_password_policy(password: str) -> None:
    raw = str(password or "")
    min_len = max(8, int(settings.AUTH_PASSWORD_MIN_LENGTH))
    if len(raw) < min_len:
        raise ValueError(f"Password must be at least {min_len} characters")
    missing_class = (
        (bool(settings.AUTH_PASSWORD_REQUIRE_UPPER) and not re.search(r"[A-Z]", raw))
        or (bool(settings.AUTH_PASSWORD_REQUIRE_LOWER) and not re.search(r"[a-z]", raw))
        or (bool(settings.AUTH_PASSWORD_REQUIRE_DIGIT) and not re.search(r"[0-9]", raw))
    )
    if missing_class:
        raise ValueError("Password must contain uppercase, lowercase, and a number")
    if bool(settings.AUTH_PASSWORD_REQUIRE_SPECIAL) and not re.search(r"[^A-Za-z0-9]", raw):
        raise ValueError("Password must contain at least one special character")


def create_session_token(user: User, remember_me: bool = False) -> tuple[str, int]:
    """Signed session token and its lifetime in seconds."""
    if remember_me:
        lifetime = timedelta(days=max(1, int(settings.AUTH_REMEMBER_ME_DAYS)))
    else:
        lifetime = timedelta(hours=max(1, int(settings.AUTH_SESSION_HOURS)))
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user.id,
        "username": user.username,
        "role": user.role,
        "iss": settings.AUTH_ISSUER,
        "iat": now,
        "exp": now + lifetime,
    }
    token = jwt.encode(payload, settings.AUTH_SECRET_KEY, algorithm=settings.AUTH_ALGORITHM)
    return token, int(lifetime.total_seconds())


def decode_session_token(token: str) -> SessionIdentity | None:
    try:
        payload = jwt.decode(
            token,
            settings.AUTH_SECRET_KEY,
            algorithms=[settings.AUTH_ALGORITHM],
            issuer=settings.AUTH_ISSUER,
            options={"verify_iss": True},
        )
    except JWTError:
        return None

    user_id = str(payload.get("sub") or "").strip()
    username = str(payload.get("username") or "").strip()
    role = str(payload.get("role") or "").strip().lower()
    if not user_id or not username or role not in ROLES:
        return None
    return SessionIdentity(user_id=user_id, username=username, role=role)


def get_user(db: Session, user_id: str) -> User | None:
    return db.get(User, user_id)


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.execute(
        select(User).where(func.lower(User.username) == username.strip().lower())
    ).scalar_one_or_none()


def find_user_by_identifier(db: Session, identifier: str) -> User | None:
    needle = identifier.strip().lower()
    if not needle:
        return None
    return db.execute(
        select(User).where(or_(func.lower(User.username) == needle, func.lower(User.email) == needle)).limit(1)
    ).scalar_one_or_none()


def create_user(
    db: Session,
    *,
    username: str,
    password: str,
    full_name: str,
    role: str = "agent",
    email: str | None = None,
    requires_password_change: bool = True,
    enforce_policy: bool = True,
) -> User:
    normalized = username.strip()
    if not normalized:
        raise ValueError("username is required")
    if role not in ROLES:
        raise ValueError(f"role must be one of: {', '.join(sorted(ROLES))}")
    if enforce_policy:
        validate_password_policy(password)
    if get_user_by_username(db, normalized):
        raise ValueError("User already exists")

    row = User(
        username=normalized,
        email=(email or "").strip().lower() or None,
        password_hash=hash_password(password),
        full_name=full_name.strip() or normalized,
        role=role,
        requires_password_change=requires_password_change,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def authenticate_user(db: Session, username: str, password: str) -> User | None:
    row = get_user_by_username(db, username)
    if not row:
        return None
    if not verify_password(password, row.password_hash):
        return None
    return row


def change_password(db: Session, user: User, current_password: str, new_password: str) -> User:
    if not verify_password(current_password, user.password_hash):
        raise ValueError("Current password is incorrect")
    validate_password_policy(new_password)
    if verify_password(new_password, user.password_hash):
        raise ValueError("New password must differ from current password")
    user.password_hash = hash_password(new_password)
    user.requires_password_change = False
    db.commit()
    db.refresh(user)
    return user


def create_reset_token(db: Session, user: User) -> PasswordResetToken:
    row = PasswordResetToken(
        user_id=user.id,
        token=secrets.token_hex(32),
        expires_at=utc_now_naive() + timedelta(minutes=max(1, int(settings.PASSWORD_RESET_TOKEN_MINUTES))),
        used=False,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def check_reset_token(db: Session, token: str) -> PasswordResetToken:
    row = db.execute(select(PasswordResetToken).where(PasswordResetToken.token == token)).scalar_one_or_none()
    if not row:
        raise ResetTokenError("Invalid reset token", status_code=404)
    if row.used:
        raise ResetTokenError("This reset token has already been used")
    if row.expires_at <= utc_now_naive():
        raise ResetTokenError("This reset token has expired")
    return row


def reset_password(db: Session, token: str, new_password: str) -> User:
    validate_password_policy(new_password)
    row = check_reset_token(db, token)
    user = get_user(db, row.user_id)
    if not user:
        raise ResetTokenError("Invalid reset token", status_code=404)
    user.password_hash = hash_password(new_password)
    user.requires_password_change = False
    row.used = True
    db.commit()
    db.refresh(user)
    return user


class LoginRateLimiter:
    """Sliding-window counter of failed logins per (username, client IP)."""

    def __init__(self):
        self._failures: dict[str, deque[datetime]] = defaultdict(deque)
        self._lock = Lock()

    @staticmethod
    def _key(username: str, client_ip: str) -> str:
        return f"{username.strip().lower()}|{client_ip.strip().lower()}"

    def _prune(self, now: datetime) -> None:
        retention_h = max(1, int(settings.AUTH_LOGIN_RL_EVENT_RETENTION_HOURS))
        cutoff = now - timedelta(hours=retention_h)
        to_delete = []
        for key, events in self._failures.items():
            while events and events[0] < cutoff:
                events.popleft()
            if not events:
                to_delete.append(key)
        for key in to_delete:
            self._failures.pop(key, None)

    def is_limited(self, username: str, client_ip: str) -> bool:
        now = utc_now_naive()
        minute_cutoff = now - timedelta(minutes=1)
        hour_cutoff = now - timedelta(hours=1)
        per_min = max(1, int(settings.AUTH_LOGIN_RL_PER_MIN))
        per_hour = max(1, int(settings.AUTH_LOGIN_RL_PER_HOUR))
        with self._lock:
            self._prune(now)
            events = self._failures.get(self._key(username, client_ip)) or deque()
            minute_count = sum(1 for ts in events if ts >= minute_cutoff)
            hour_count = sum(1 for ts in events if ts >= hour_cutoff)
            return minute_count >= per_min or hour_count >= per_hour

    def record_failure(self, username: str, client_ip: str) -> None:
        now = utc_now_naive()
        with self._lock:
            self._prune(now)
            self._failures[self._key(username, client_ip)].append(now)

    def clear(self, username: str, client_ip: str) -> None:
        with self._lock:
            self._failures.pop(self._key(username, client_ip), None)

    def reset(self) -> None:
        with self._lock:
            self._failures.clear()


login_limiter = LoginRateLimiter()
