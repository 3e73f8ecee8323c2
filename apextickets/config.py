import os
from dataclasses import dataclass
from typing import Optional


DEFAULT_XS2_API_BASE = "https://api.xs2event.com/v1"
CACHE_TTL_SECONDS = 24 * 3600


def _env_flag(name: str, default: str = "1") -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str] = None
    xs2_api_key: Optional[str] = None
    xs2_api_base: str = DEFAULT_XS2_API_BASE
    upstream_timeout: float = 10.0
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    public_base_url: Optional[str] = None
    cache_backend: str = "memory"  # 'memory' | 'redis'
    redis_url: str = "redis://127.0.0.1:6379"
    redis_max_conn: int = 64
    cache_ttl_seconds: int = CACHE_TTL_SECONDS
    log_level: str = "INFO"
    log_json: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.environ.get("DATABASE_URL") or None,
            xs2_api_key=os.environ.get("XS2_API_KEY") or None,
            xs2_api_base=os.environ.get("XS2_API_BASE", DEFAULT_XS2_API_BASE),
            upstream_timeout=float(os.environ.get("UPSTREAM_TIMEOUT", "10")),
            stripe_secret_key=os.environ.get("STRIPE_SECRET_KEY") or None,
            stripe_webhook_secret=(
                os.environ.get("STRIPE_WEBHOOK_SECRET") or None
            ),
            public_base_url=os.environ.get("PUBLIC_BASE_URL") or None,
            cache_backend=os.environ.get("CACHE_BACKEND", "memory").lower(),
            redis_url=os.environ.get("REDIS_URL", "redis://127.0.0.1:6379"),
            redis_max_conn=int(os.environ.get("REDIS_MAX_CONN", "64")),
            cache_ttl_seconds=int(
                os.environ.get("CACHE_TTL_SECONDS", str(CACHE_TTL_SECONDS))
            ),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            log_json=_env_flag("LOG_JSON"),
        )

    @property
    def site_url(self) -> Optional[str]:
        if not self.public_base_url:
            return None
        return self.public_base_url.rstrip("/")
