import time
from datetime import date, datetime, timezone
from typing import Any, Optional


# ----------------------------
# Helpers
# ----------------------------
def now_ts() -> float:
    return time.time()


def today_iso() -> str:
    return date.today().isoformat()


def to_iso(ts: float | None) -> Optional[str]:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def parse_lastmod(value: Any) -> Optional[str]:
    """ISO-8601 UTC for whatever date-ish value a catalog row carries."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return to_iso(float(value))
    if isinstance(value, datetime):
        dt = value
    else:
        raw = str(value).strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def parse_positive_int(raw: Optional[str], default: int,
                       cap: Optional[int] = None) -> int:
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        return default
    if value < 1:
        return default
    if cap is not None:
        value = min(value, cap)
    return value


def is_true(raw: Optional[str]) -> bool:
    return (raw or "").strip().lower() == "true"


def split_csv(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    return [p.strip() for p in raw.split(",") if p.strip()]
