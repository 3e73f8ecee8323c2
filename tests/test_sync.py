from dataclasses import replace

import pytest
from sqlalchemy import select

from apextickets.cache import MemoryCache
from apextickets.errors import ConfigError
from apextickets.model.db import City, Event, Venue
from apextickets.sync import TABLES, run_sync, to_row


def _pages(key, items, page_size=100):
    def respond(params):
        page = int(params["page"])
        chunk = items[(page - 1) * page_size: page * page_size]
        more = page * page_size < len(items)
        return 200, {key: chunk,
                     "pagination": {"page_number": page,
                                    "next_page": "x" if more else None}}
    return respond


def test_to_row_projects_and_coerces():
    row = to_row(Venue, {
        "venue_id": 42, "official_name": "Circuit Zandvoort",
        "popular_stadium": "true", "capacity": "105000",
        "latitude": "52.38", "wikipedia_slug": "ignored",
        "updated": "2026-05-01T10:00:00Z",
    })
    assert row["venue_id"] == "42"
    assert row["popular_stadium"] is True
    assert row["capacity"] == 105000
    assert row["latitude"] == pytest.approx(52.38)
    assert row["updated_at"] == "2026-05-01T10:00:00Z"
    assert "wikipedia_slug" not in row


def test_to_row_requires_primary_key():
    assert to_row(City, {"city": "Monza"}) is None
    assert to_row(Event, {"event_name": "no id"}) is None


async def test_sync_upserts_pages_and_invalidates_events(settings, upstream, Session):
    events = [{"event_id": f"e{i}", "event_name": f"Match {i}"} for i in range(150)]
    upstream.on("events", _pages("events", events))
    cache = MemoryCache(ttl_seconds=60)
    await cache.set("events:all", {"events": []}, tags=("events",))

    results = await run_sync(settings, ["events"],
                             transport=upstream.transport(), cache=cache)
    assert results == [{"table": "events", "inserted": 150, "errors": 0,
                        "error_messages": []}]
    assert len(upstream.calls_to("events")) == 2
    assert await cache.get("events:all") is None

    # second run updates in place
    events[0]["event_name"] = "Renamed"
    await run_sync(settings, ["events"], transport=upstream.transport(),
                   cache=cache)
    async with Session() as db:
        rows = (await db.execute(select(Event))).scalars().all()
    assert len(rows) == 150
    assert {r.event_name for r in rows if r.event_id == "e0"} == {"Renamed"}


async def test_sync_counts_bad_items(settings, upstream):
    upstream.on("cities", _pages("cities", [
        {"city": "Monza", "country": "ITA"},
        {"city": "Imola"},
    ]))
    [result] = await run_sync(settings, ["cities"],
                              transport=upstream.transport(),
                              cache=MemoryCache(ttl_seconds=60))
    assert result["inserted"] == 1
    assert result["errors"] == 1
    assert result["error_messages"]


async def test_sync_keeps_partial_results_on_upstream_error(settings, upstream):
    calls = []

    def flaky(params):
        calls.append(params["page"])
        if params["page"] == "2":
            return 500, {"message": "boom"}
        return 200, {"sports": [{"sport_id": f"s{i}"} for i in range(100)],
                     "pagination": {"next_page": "2"}}

    upstream.on("sports", flaky)
    [result] = await run_sync(settings, ["sports"],
                              transport=upstream.transport(),
                              cache=MemoryCache(ttl_seconds=60))
    assert calls == ["1", "2"]
    assert result["inserted"] == 100


async def test_sync_requires_api_key(settings):
    with pytest.raises(ConfigError):
        await run_sync(replace(settings, xs2_api_key=None), list(TABLES))
