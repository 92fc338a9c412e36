import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _parse_csv(value: str) -> List[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    database_url: str

    # Session credentials
    session_secret: Optional[str]
    session_algorithm: str
    session_ttl_seconds: int

    # Identity provider (Google Sign-In by default)
    identity_audience: Optional[str]
    identity_issuers: List[str]
    identity_jwks_url: str
    identity_jwks_cache_seconds: int
    identity_jwks_min_refresh_seconds: int
    identity_http_timeout: float

    # Object storage
    storage_backend: str  # local|s3
    storage_dir: str
    s3_bucket: Optional[str]
    s3_endpoint_url: Optional[str]
    s3_region: Optional[str]
    s3_access_key_id: Optional[str]
    s3_secret_access_key: Optional[str]
    s3_prefix: str

    max_upload_size: int
    retry_attempts: int
    retry_delay_seconds: float

    redis_url: str
    reconcile_interval_seconds: int
    log_level: str


def _env(name: str, default: str = "") -> str:
    return (os.getenv(name, "") or default).strip()


def _positive_int(name: str, default: str) -> int:
    value = int(_env(name, default))
    if value <= 0:
        raise ValueError(f"{name} must be a positive number of seconds, got {value}")
    return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        database_url=_env("DATABASE_URL", "sqlite:///./filegate.db"),
        session_secret=_env("SESSION_SECRET") or None,
        session_algorithm=_env("SESSION_ALGORITHM", "HS256"),
        session_ttl_seconds=_positive_int("SESSION_TTL_SECONDS", "86400"),
        identity_audience=_env("IDENTITY_AUDIENCE") or None,
        identity_issuers=_parse_csv(_env("IDENTITY_ISSUERS", "accounts.google.com,https://accounts.google.com")),
        identity_jwks_url=_env("IDENTITY_JWKS_URL", "https://www.googleapis.com/oauth2/v3/certs"),
        identity_jwks_cache_seconds=int(_env("IDENTITY_JWKS_CACHE_SECONDS", "3600")),
        identity_jwks_min_refresh_seconds=int(_env("IDENTITY_JWKS_MIN_REFRESH_SECONDS", "60")),
        identity_http_timeout=float(_env("IDENTITY_HTTP_TIMEOUT", "10")),
        storage_backend=_env("STORAGE_BACKEND", "local").lower(),
        storage_dir=_env("STORAGE_DIR", "./storage"),
        s3_bucket=_env("S3_BUCKET") or None,
        s3_endpoint_url=_env("S3_ENDPOINT_URL") or None,
        s3_region=_env("S3_REGION") or None,
        s3_access_key_id=_env("S3_ACCESS_KEY_ID") or None,
        s3_secret_access_key=_env("S3_SECRET_ACCESS_KEY") or None,
        s3_prefix=_env("S3_PREFIX"),
        max_upload_size=int(_env("MAX_UPLOAD_SIZE", str(50 * 1024 * 1024))),
        retry_attempts=max(1, int(_env("RETRY_ATTEMPTS", "3"))),
        retry_delay_seconds=float(_env("RETRY_DELAY_SECONDS", "0.2")),
        redis_url=_env("REDIS_URL", "redis://localhost:6379/0"),
        reconcile_interval_seconds=int(_env("RECONCILE_INTERVAL_SECONDS", "900")),
        log_level=_env("LOG_LEVEL", "INFO").upper(),
    )
