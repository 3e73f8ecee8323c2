"""Inventory proxy: our query dialect in, one stable envelope out.

Callers hand in the query string they received; the proxy renames the
parameters the upstream API knows under different names, injects the
paging and date defaults, fetches (through the response cache), and
returns ``{results, events, items, pagination, status}`` for single
events and collections alike.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog

from ..cache import ResponseCache
from ..errors import ApiError, ConfigError, ErrorCode, UpstreamError
from ..helpers import today_iso
from ..records import normalize_event, normalize_events, pick_list
from ..tickets import group_tickets, is_available, normalize_ticket
from .client import XS2Client

log = structlog.get_logger(__name__)

ORIGIN_ALL_EVENTS = "allevents"
EVENTS_TAG = "events"
DEFAULT_PAGE_SIZE = "50"
DEFAULT_TICKETS_PAGE_SIZE = "200"

# params that never count as a filter
_PAGING = frozenset({"page", "page_size"})
_CACHE_BUSTERS = frozenset({"no_cache", "fresh"})
_EVENT_PLURAL = ("events",)


@dataclass(frozen=True)
class EventQuery:
    params: Dict[str, str]
    origin: Optional[str] = None
    event_id: Optional[str] = None
    bypass_cache: bool = False

    @property
    def cache_key(self) -> str:
        if self.event_id:
            return f"event:{self.event_id}"
        sig = "&".join(f"{k}={v}" for k, v in sorted(self.params.items()))
        return f"events:{sig or 'all'}"


def translate_params(query: Mapping[str, str]) -> EventQuery:
    """Rename internal parameters to the upstream dialect.

    ``team`` becomes ``team_id`` and ``page_number`` becomes ``page``
    (only when the target is absent; otherwise both pass through).
    ``origin`` is internal only and is stripped. ``id``/``event_id``
    select a single event.
    """
    params = {k: v for k, v in query.items() if v is not None}
    origin = params.pop("origin", None)
    event_id = params.pop("id", None) or params.pop("event_id", None)
    params.pop("event_id", None)

    if "team" in params and "team_id" not in params:
        params["team_id"] = params.pop("team")
    if "page_number" in params and "page" not in params:
        params["page"] = params.pop("page_number")

    busters = [params.pop(k, "") for k in sorted(_CACHE_BUSTERS)]
    bypass = any(b.lower() == "true" for b in busters)
    return EventQuery(params=params, origin=origin, event_id=event_id,
                      bypass_cache=bypass)


def apply_defaults(q: EventQuery, today: Optional[str] = None) -> EventQuery:
    """Inject ``page_size`` and the upcoming-only date filter.

    The date default applies only to sport queries: a tournament-only
    query and ``origin=allevents`` both see past events too.
    """
    if q.event_id:
        return q
    params = dict(q.params)
    has_filter = any(k not in _PAGING for k in params)
    if has_filter:
        params.setdefault("page_size", DEFAULT_PAGE_SIZE)
    if (
        params.get("sport_type")
        and "date_stop" not in params
        and q.origin != ORIGIN_ALL_EVENTS
    ):
        params["date_stop"] = f"ge:{today or today_iso()}"
    return EventQuery(params=params, origin=q.origin, event_id=q.event_id,
                      bypass_cache=q.bypass_cache)


def events_envelope(events: List[Dict[str, Any]],
                    pagination: Optional[Dict[str, Any]] = None,
                    status: int = 200) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "results": events,
        "events": events,
        "items": events,
    }
    if pagination is not None:
        out["pagination"] = pagination
    out["status"] = status
    return out


def _upstream_error(e: UpstreamError, what: str,
                    plural: Iterable[str] = _EVENT_PLURAL) -> ApiError:
    status = e.status if e.status >= 400 else 500
    return ApiError(
        ErrorCode.UPSTREAM, f"Failed to fetch {what}", status=status,
        details=e.details, plural=plural, echo_status=True,
    )


def _config_error(e: ConfigError,
                  plural: Iterable[str] = _EVENT_PLURAL) -> ApiError:
    return ApiError(ErrorCode.CONFIG, str(e), details=str(e),
                    plural=plural, echo_status=True)


class InventoryProxy:
    def __init__(self, client: XS2Client, cache: ResponseCache) -> None:
        self.client = client
        self.cache = cache

    # ----------------------------
    # events
    # ----------------------------
    async def fetch_events(
        self, query: Mapping[str, str], today: Optional[str] = None
    ) -> Dict[str, Any]:
        """Single event or filtered collection, always the same envelope.

        Raises ApiError (404 for an unknown event, upstream status or 500
        otherwise); the error body carries empty ``events``/``results``/
        ``items`` lists.
        """
        q = apply_defaults(translate_params(query), today=today)

        if not q.bypass_cache:
            hit = await self.cache.get(q.cache_key)
            if hit is not None:
                return hit

        if q.event_id:
            result = await self._fetch_one(q.event_id)
        else:
            result = await self._fetch_many(q.params)

        if not q.bypass_cache:
            await self.cache.set(q.cache_key, result, tags=(EVENTS_TAG,))
        return result

    async def _fetch_one(self, event_id: str) -> Dict[str, Any]:
        try:
            data = await self.client.get(f"events/{event_id}")
        except ConfigError as e:
            raise _config_error(e)
        except UpstreamError as e:
            if e.status == 404:
                raise ApiError(
                    ErrorCode.NOT_FOUND, "Event not found", details=e.details,
                    plural=_EVENT_PLURAL, echo_status=True,
                )
            raise _upstream_error(e, "event")

        listed = pick_list(data, "events")
        raw = listed[0] if listed else data
        event = normalize_event(raw) if raw else None
        if event is None:
            raise ApiError(
                ErrorCode.NOT_FOUND, "Event not found",
                details="Event not found", plural=_EVENT_PLURAL,
                echo_status=True,
            )
        return events_envelope([event])

    async def _fetch_many(self, params: Dict[str, str]) -> Dict[str, Any]:
        try:
            data = await self.client.get("events", params)
        except ConfigError as e:
            raise _config_error(e)
        except UpstreamError as e:
            raise _upstream_error(e, "events")
        events = normalize_events(pick_list(data, "events"))
        pagination = data.get("pagination")
        return events_envelope(
            events, pagination if isinstance(pagination, dict) else {}
        )

    async def invalidate_events(self) -> int:
        dropped = await self.cache.invalidate_tag(EVENTS_TAG)
        log.info("proxy.cache_invalidated", tag=EVENTS_TAG, dropped=dropped)
        return dropped

    # ----------------------------
    # tickets
    # ----------------------------
    async def fetch_tickets(self, query: Mapping[str, str]):
        """Raw passthrough: (upstream status, upstream JSON)."""
        params = dict(query)
        params.setdefault("page_size", DEFAULT_TICKETS_PAGE_SIZE)
        try:
            return await self.client.request("tickets", params)
        except ConfigError as e:
            raise _config_error(e, ("tickets",))
        except UpstreamError as e:
            raise _upstream_error(e, "tickets", ("tickets",))

    async def ticket_groups(self, event_id: str) -> List[Dict[str, Any]]:
        try:
            data = await self.client.get("tickets", {
                "event_id": event_id,
                "ticket_status": "available",
                "stock": "gt:0",
                "page_size": "500",
            })
        except ConfigError as e:
            raise _config_error(e, ("groups",))
        except UpstreamError as e:
            raise _upstream_error(e, "tickets", ("groups",))
        tickets = [
            t for t in map(normalize_ticket, pick_list(data, "tickets"))
            if t is not None and is_available(t)
        ]
        return [g.as_dict() for g in group_tickets(tickets)]

    async def validate_stock(self, ticket_ids: List[str]) -> bool:
        """True only if every id is available with stock > 0 right now.

        All-or-nothing: one missing or sold-out ticket fails the lot.
        Upstream failures propagate as UpstreamError/ConfigError.
        """
        wanted = [str(t) for t in ticket_ids]
        if not wanted:
            return False
        data = await self.client.get("tickets", {
            "id": ",".join(wanted),
            "ticket_status": "available",
            "stock": "gt:0",
        })
        ok = set()
        for raw in pick_list(data, "tickets"):
            if not isinstance(raw, dict):
                continue
            status = raw.get("ticket_status", raw.get("status"))
            if status is not None and str(status).lower() != "available":
                continue
            try:
                stock = int(raw.get("stock", 0) or 0)
            except (TypeError, ValueError):
                continue
            if stock > 0:
                ok.add(str(raw.get("id", raw.get("ticket_id"))))
        return all(t in ok for t in wanted)
