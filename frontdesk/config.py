import os

from dotenv import load_dotenv

load_dotenv()


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default)).strip()
    try:
        return int(raw)
    except Exception:
        return int(default)


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "1" if default else "0").strip().lower()
    if raw in {"1", "true", "yes", "on"}:
        return True
    if raw in {"0", "false", "no", "off"}:
        return False
    return bool(default)


def _get_list(name: str, default: str = "") -> list[str]:
    raw = os.getenv(name, default)
    return [part.strip() for part in raw.split(",") if part.strip()]


class Settings:
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./frontdesk.db")
    DB_AUTO_CREATE_ALL = _get_bool("DB_AUTO_CREATE_ALL", True)
    TIMEZONE = os.getenv("TIMEZONE", "America/New_York").strip()
    SCHEDULER_ENABLED = _get_bool("SCHEDULER_ENABLED", True)
    APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:5000").strip().rstrip("/")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    LOG_JSON = _get_bool("LOG_JSON", True)

    AUTH_SECRET_KEY = os.getenv("AUTH_SECRET_KEY", "change-this-in-prod").strip()
    AUTH_ALGORITHM = os.getenv("AUTH_ALGORITHM", "HS256").strip()
    AUTH_ISSUER = os.getenv("AUTH_ISSUER", "frontdesk").strip()
    AUTH_SESSION_COOKIE = os.getenv("AUTH_SESSION_COOKIE", "frontdesk_session").strip()
    AUTH_SESSION_HOURS = _get_int("AUTH_SESSION_HOURS", 12)
    AUTH_REMEMBER_ME_DAYS = _get_int("AUTH_REMEMBER_ME_DAYS", 7)
    AUTH_COOKIE_SECURE = _get_bool("AUTH_COOKIE_SECURE", False)
    AUTH_REQUIRED = _get_bool("AUTH_REQUIRED", True)
    AUTH_PASSWORD_MIN_LENGTH = _get_int("AUTH_PASSWORD_MIN_LENGTH", 10)
    AUTH_PASSWORD_REQUIRE_UPPER = _get_bool("AUTH_PASSWORD_REQUIRE_UPPER", True)
    AUTH_PASSWORD_REQUIRE_LOWER = _get_bool("AUTH_PASSWORD_REQUIRE_LOWER", True)
    AUTH_PASSWORD_REQUIRE_DIGIT = _get_bool("AUTH_PASSWORD_REQUIRE_DIGIT", True)
    AUTH_PASSWORD_REQUIRE_SPECIAL = _get_bool("AUTH_PASSWORD_REQUIRE_SPECIAL", False)
    AUTH_LOGIN_RL_PER_MIN = _get_int("AUTH_LOGIN_RL_PER_MIN", 8)
    AUTH_LOGIN_RL_PER_HOUR = _get_int("AUTH_LOGIN_RL_PER_HOUR", 40)
    AUTH_LOGIN_RL_EVENT_RETENTION_HOURS = _get_int("AUTH_LOGIN_RL_EVENT_RETENTION_HOURS", 4)
    PASSWORD_RESET_TOKEN_MINUTES = _get_int("PASSWORD_RESET_TOKEN_MINUTES", 60)

    SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com").strip()
    SMTP_PORT = _get_int("SMTP_PORT", 587)
    SMTP_USER = os.getenv("SMTP_USER", "").strip()
    SMTP_PASS = os.getenv("SMTP_PASS", "").strip()
    SMTP_FROM = os.getenv("SMTP_FROM", "").strip()
    SMTP_TIMEOUT_SECONDS = _get_int("SMTP_TIMEOUT_SECONDS", 30)
    REPORT_EMAIL_RECIPIENTS = _get_list("REPORT_EMAIL_RECIPIENTS")

    PACKAGE_ALERT_WARNING_DAYS = _get_int("PACKAGE_ALERT_WARNING_DAYS", 3)
    PACKAGE_ALERT_OVERDUE_DAYS = _get_int("PACKAGE_ALERT_OVERDUE_DAYS", 7)

    SECURITY_HEADERS_ENABLED = _get_bool("SECURITY_HEADERS_ENABLED", True)


settings = Settings()
