import os
import json


def _parse_cors_origins(value: str | None) -> list[str]:
    if not value:
        return ["*"]

    cleaned = value.strip()
    if not cleaned:
        return ["*"]

    if cleaned.startswith("["):
        try:
            parsed = json.loads(cleaned)
            if isinstance(parsed, list):
                origins = [str(item).strip() for item in parsed if str(item).strip()]
                if origins:
                    return origins
        except json.JSONDecodeError:
            pass

    origins = [item.strip() for item in cleaned.split(",") if item.strip()]
    return origins or ["*"]


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


DATABASE_URL = os.environ.get("DATABASE_URL", "postgresql://localhost/siteops")
SECRET_KEY = os.environ.get("SECRET_KEY", "siteops-secret-key-change-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24
CORS_ORIGINS = _parse_cors_origins(os.environ.get("CORS_ORIGINS"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

FOREMAN_DEFAULT_RATE = _env_float("FOREMAN_DEFAULT_RATE", 25.00)
DEFAULT_PAGE_SIZE = _env_int("DEFAULT_PAGE_SIZE", 50)
MAX_PAGE_SIZE = _env_int("MAX_PAGE_SIZE", 100)
MAX_BULK_RECORDS = _env_int("MAX_BULK_RECORDS", 1000)
