"""Slug -> event resolution against the inventory proxy.

Two tiers: a slug of the form ``event-<id>`` is fetched directly; any
other slug is matched by walking every event of the sport and comparing
``create_event_slug`` output. The walk follows the upstream pagination
cursor and always carries ``origin=allevents`` so the proxy does not hide
past events behind its date default.
"""

from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qsl, urljoin, urlsplit

import structlog

from .config import DEFAULT_XS2_API_BASE
from .errors import ApiError
from .inventory import ORIGIN_ALL_EVENTS, InventoryProxy
from .slug import create_event_slug, extract_event_id_from_slug

log = structlog.get_logger(__name__)

MAX_PAGES = 50
PAGE_SIZE = 100

Cursor = Union[str, int, None]


def _query_of(cursor: str, base: str) -> Optional[str]:
    if cursor.startswith(("http://", "https://")):
        return urlsplit(cursor).query
    if "?" in cursor or cursor.startswith("/"):
        return urlsplit(urljoin(base.rstrip("/") + "/", cursor)).query
    if "=" in cursor:
        return cursor
    return None


def next_page_params(
    cursor: Cursor,
    current: Mapping[str, str],
    base: str = DEFAULT_XS2_API_BASE,
) -> Optional[Dict[str, str]]:
    """Turn an upstream ``next_page`` cursor into proxy query params.

    Accepts absolute URLs, relative paths, bare query strings and plain
    page numbers. Returns None when pagination should stop: no cursor,
    an unparseable one, or one that points back at ``current``.
    """
    if cursor is None or cursor == "" or isinstance(cursor, bool):
        return None

    if isinstance(cursor, int):
        params = dict(current)
        params["page"] = str(cursor)
    else:
        cursor = str(cursor).strip()
        try:
            query = _query_of(cursor, base)
        except ValueError:
            # malformed URL: fall back to whatever follows the '?'
            query = cursor.split("?", 1)[-1] if "=" in cursor else None
        if not query:
            return None
        params = dict(parse_qsl(query, keep_blank_values=True))
        if not params:
            return None

    params["origin"] = ORIGIN_ALL_EVENTS
    if params == dict(current):
        return None
    return params


async def fetch_all_events(
    proxy: InventoryProxy,
    sport_type: str,
    max_pages: int = MAX_PAGES,
    page_size: int = PAGE_SIZE,
) -> List[Dict[str, Any]]:
    """Every event of a sport, past and future, bounded by ``max_pages``."""
    params: Dict[str, str] = {
        "sport_type": sport_type,
        "page_size": str(page_size),
        "origin": ORIGIN_ALL_EVENTS,
    }
    events: List[Dict[str, Any]] = []
    for page in range(max_pages):
        try:
            env = await proxy.fetch_events(params)
        except ApiError as e:
            log.warning("resolver.page_failed", sport_type=sport_type,
                        page=page, error=e.error, status=e.status)
            break
        batch = env.get("events") or []
        if not batch:
            break
        events.extend(batch)
        cursor = (env.get("pagination") or {}).get("next_page")
        nxt = next_page_params(cursor, params, base=proxy.client.base_url)
        if nxt is None:
            break
        params = nxt
    else:
        log.warning("resolver.page_ceiling", sport_type=sport_type,
                    max_pages=max_pages, events=len(events))
    return events


async def resolve_event(
    proxy: InventoryProxy,
    sport_type: str,
    slug: str,
    max_pages: int = MAX_PAGES,
) -> Optional[Tuple[Dict[str, Any], str]]:
    """``(event, event_id)`` for a display slug, or None."""
    raw = (slug or "").strip()
    if not raw:
        return None

    # upstream ids are case sensitive
    embedded = extract_event_id_from_slug(raw)
    if embedded:
        try:
            env = await proxy.fetch_events({"event_id": embedded})
        except ApiError as e:
            log.info("resolver.direct_miss", event_id=embedded, status=e.status)
        else:
            if env.get("events"):
                return env["events"][0], embedded

    slug = raw.lower()
    for event in await fetch_all_events(proxy, sport_type, max_pages=max_pages):
        if create_event_slug(event).lower() == slug:
            return event, event["event_id"]
    log.info("resolver.no_match", sport_type=sport_type, slug=slug)
    return None
