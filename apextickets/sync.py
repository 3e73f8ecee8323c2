#!/usr/bin/env python3
"""Mirror the upstream catalog into the relational store.

    apextickets-sync                 # every table, in dependency order
    apextickets-sync --table events  # one table

Each table is paged through the inventory API and upserted in batches;
a failing batch is counted and reported, it does not abort the run.
Syncing ``events`` drops the proxy's cached event responses.
"""

from __future__ import annotations
import argparse
import asyncio
import sys
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx
import orjson
import structlog
from sqlalchemy import Boolean, Float, Integer, String, Text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from .cache import ResponseCache, new_cache, redis_from_url
from .config import Settings
from .errors import ConfigError, UpstreamError
from .helpers import now_ts, to_iso
from .infra.sql import make_async_engine
from .inventory import EVENTS_TAG, XS2Client
from .logs import configure_logging
from .model.db import (
    Base, Category, City, Country, Event, Sport, Team, Tournament, Venue,
)

log = structlog.get_logger(__name__)

MAX_PAGES = 1000
PAGE_SIZE = 100
BATCH_SIZE = 500
STORE_ERRORS = (SQLAlchemyError, OSError)

# dependency order: referenced tables first
TABLES: Dict[str, Tuple[str, Any]] = {
    "sports": ("sports", Sport),
    "countries": ("countries", Country),
    "cities": ("cities", City),
    "venues": ("venues", Venue),
    "teams": ("teams", Team),
    "tournaments": ("tournaments", Tournament),
    "events": ("events", Event),
    "categories": ("categories", Category),
}


# ----------------------------
# Upstream paging
# ----------------------------
async def fetch_all_pages(
    client: XS2Client,
    endpoint: str,
    item_key: str,
    page_size: int = PAGE_SIZE,
    max_pages: int = MAX_PAGES,
) -> List[Dict[str, Any]]:
    """Every item of an upstream collection.

    An upstream error ends the walk early and keeps what was fetched so
    far; a missing API key propagates.
    """
    items: List[Dict[str, Any]] = []
    for page in range(1, max_pages + 1):
        try:
            data = await client.get(endpoint, {
                "page_size": str(page_size), "page": str(page),
            })
        except UpstreamError as e:
            log.error("sync.page_failed", endpoint=endpoint, page=page,
                      status=e.status, details=e.details)
            break
        batch = data.get(item_key)
        if not isinstance(batch, list):
            batch = data.get("results") or data.get("items") or []
        batch = [b for b in batch if isinstance(b, dict)]
        if not batch:
            break
        items.extend(batch)
        pagination = data.get("pagination") or {}
        if not pagination.get("next_page") and len(batch) < page_size:
            break
    return items


# ----------------------------
# Row mapping
# ----------------------------
def _coerce(column, value: Any) -> Any:
    if value is None:
        return None
    ctype = column.type
    try:
        if isinstance(ctype, Boolean):
            if isinstance(value, str):
                return value.strip().lower() in ("1", "true", "yes")
            return bool(value)
        if isinstance(ctype, Integer):
            return int(value)
        if isinstance(ctype, Float):
            return float(value)
        if isinstance(ctype, (String, Text)):
            return value if isinstance(value, str) else str(value)
    except (TypeError, ValueError):
        return None
    return value


def to_row(model, item: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Project an upstream item onto the model's columns.

    None when a primary-key column is missing. ``updated_at`` comes from
    the upstream ``updated`` stamp, or the sync time.
    """
    row: Dict[str, Any] = {}
    for column in model.__table__.columns:
        if column.key == "updated_at":
            continue
        row[column.key] = _coerce(column, item.get(column.key))
    for pk in model.__table__.primary_key.columns:
        if row.get(pk.key) in (None, ""):
            return None
    row["updated_at"] = (
        item.get("updated") or item.get("updated_at") or to_iso(now_ts())
    )
    return row


async def upsert(
    Session: async_sessionmaker,
    model,
    rows: Sequence[Dict[str, Any]],
    batch_size: int = BATCH_SIZE,
) -> Tuple[int, int, List[str]]:
    """(upserted, failed, messages); one transaction per batch."""
    upserted, failed, messages = 0, 0, []
    for start in range(0, len(rows), batch_size):
        batch = rows[start:start + batch_size]
        try:
            async with Session() as db:
                async with db.begin():
                    for row in batch:
                        await db.merge(model(**row))
        except STORE_ERRORS as e:
            failed += len(batch)
            messages.append(f"Batch {start // batch_size + 1}: {e}")
            log.error("sync.batch_failed", table=model.__tablename__,
                      batch=start // batch_size + 1, error=str(e))
        else:
            upserted += len(batch)
    return upserted, failed, messages


async def sync_table(
    table: str, client: XS2Client, Session: async_sessionmaker
) -> Dict[str, Any]:
    endpoint, model = TABLES[table]
    result: Dict[str, Any] = {
        "table": table, "inserted": 0, "errors": 0, "error_messages": [],
    }
    items = await fetch_all_pages(client, endpoint, table)

    rows, skipped = [], 0
    for item in items:
        row = to_row(model, item)
        if row is None:
            skipped += 1
        else:
            rows.append(row)
    if skipped:
        result["errors"] += skipped
        result["error_messages"].append(
            f"{skipped} item(s) without primary key skipped"
        )

    upserted, failed, messages = await upsert(Session, model, rows)
    result["inserted"] = upserted
    result["errors"] += failed
    result["error_messages"].extend(messages)
    log.info("sync.table_done", table=table, fetched=len(items),
             inserted=upserted, errors=result["errors"])
    return result


async def run_sync(
    settings: Settings,
    tables: Sequence[str] = tuple(TABLES),
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    cache: Optional[ResponseCache] = None,
) -> List[Dict[str, Any]]:
    if not settings.database_url:
        raise ConfigError("DATABASE_URL is not set")
    if not settings.xs2_api_key:
        raise ConfigError("XS2_API_KEY missing")

    engine, Session = make_async_engine(settings.database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    r = None
    if cache is None and settings.cache_backend == "redis":
        r = redis_from_url(settings.redis_url, settings.redis_max_conn)
        cache = new_cache("redis", ttl_seconds=settings.cache_ttl_seconds, r=r)

    results = []
    try:
        async with httpx.AsyncClient(
            timeout=settings.upstream_timeout, transport=transport
        ) as http:
            client = XS2Client(http, settings.xs2_api_key,
                               settings.xs2_api_base)
            for table in tables:
                results.append(await sync_table(table, client, Session))
                if table == "events" and cache is not None:
                    dropped = await cache.invalidate_tag(EVENTS_TAG)
                    log.info("sync.cache_invalidated", tag=EVENTS_TAG,
                             dropped=dropped)
    finally:
        if r is not None:
            await r.close()
        await engine.dispose()
    return results


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(
        prog="apextickets-sync",
        description="Mirror the upstream inventory catalog into the database",
    )
    ap.add_argument(
        "--table", action="append", choices=list(TABLES),
        help="table to sync (repeatable); default: all, in dependency order",
    )
    args = ap.parse_args(argv)

    settings = Settings.from_env()
    configure_logging(settings.log_level, settings.log_json)
    tables = [t for t in TABLES if t in args.table] if args.table else list(TABLES)

    try:
        results = asyncio.run(run_sync(settings, tables))
    except ConfigError as e:
        log.error("sync.config_error", error=str(e))
        return 2

    sys.stdout.write(orjson.dumps(results, option=orjson.OPT_INDENT_2).decode())
    sys.stdout.write("\n")
    return 1 if any(r["errors"] for r in results) else 0


if __name__ == "__main__":
    sys.exit(main())
