import re
from typing import Any, Dict, Optional


SPORT_PATHS: Dict[str, str] = {
    "formula1": "/formula-1",
    "football": "/football",
    "motogp": "/motogp",
    "tennis": "/tennis",
}

PATH_TO_SPORT: Dict[str, str] = {v: k for k, v in SPORT_PATHS.items()}

_EVENT_ID_IN_SLUG = re.compile(r"^event-([a-z0-9-]+)$", re.IGNORECASE)


def create_slug(text: Optional[str]) -> str:
    if not text:
        return ""
    s = str(text).lower().strip()
    s = re.sub(r"[\s_]+", "-", s)
    s = re.sub(r"[^a-z0-9-]", "", s)
    s = re.sub(r"-+", "-", s)
    return s.strip("-")


def create_event_slug(event: Dict[str, Any]) -> str:
    """Slug from the canonical event name; ``event-<id>`` if too short."""
    slug = create_slug(event.get("event_name") or "event")
    if len(slug) < 3:
        slug = f"event-{event.get('event_id') or ''}"
    return slug


def extract_event_id_from_slug(slug: str) -> Optional[str]:
    m = _EVENT_ID_IN_SLUG.match(slug or "")
    return m.group(1) if m else None


# ----------------------------
# Sport routes
# ----------------------------
def get_sport_path(sport_type: Optional[str]) -> Optional[str]:
    if not sport_type:
        return None
    normalized = sport_type.lower()
    return SPORT_PATHS.get(normalized, f"/{normalized}")


def resolve_sport_type_from_slug(slug: Optional[str]) -> Optional[str]:
    """'formula-1' -> 'formula1'; unknown slugs lose their dashes."""
    if not slug:
        return None
    normalized = slug.lower().lstrip("/")
    if f"/{normalized}" in PATH_TO_SPORT:
        return PATH_TO_SPORT[f"/{normalized}"]
    if normalized in SPORT_PATHS:
        return normalized
    return normalized.replace("-", "") or None


def sport_slug(sport_type: Optional[str]) -> str:
    """Route segment (no leading slash) for a sport, '' if unknown."""
    if not sport_type:
        return ""
    path = get_sport_path(str(sport_type)) or ""
    return path.lstrip("/")
