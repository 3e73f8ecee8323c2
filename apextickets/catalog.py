"""Catalog store adapter: filtered, paginated reads of the mirrored catalog.

Each entity declares its filters once; the same predicate list feeds the
page query and the count query so ``total_pages`` can never drift from
the rows actually returned.
"""

from __future__ import annotations
import asyncio
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from .errors import ApiError, ErrorCode
from .helpers import is_true, parse_positive_int, split_csv
from .infra.timings import timeit
from .model.db import (
    Category, City, Country, Event, Sport, Team, Tournament, Venue,
    row_to_dict,
)

log = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 500
STORE_ERRORS = (SQLAlchemyError, OSError)

Predicates = Callable[[Mapping[str, str]], list]


def _eq(column, key: str) -> Predicates:
    def build(q: Mapping[str, str]) -> list:
        v = q.get(key)
        return [column == v] if v else []
    return build


def _flag(column, key: str = "popular") -> Predicates:
    def build(q: Mapping[str, str]) -> list:
        return [column.is_(True)] if is_true(q.get(key)) else []
    return build


def _ids(column, key: str = "ids") -> Predicates:
    def build(q: Mapping[str, str]) -> list:
        ids = split_csv(q.get(key))
        return [column.in_(ids)] if ids else []
    return build


@dataclass(frozen=True)
class Entity:
    plural: str
    model: Any
    order_by: Callable[[], list]
    default_page_size: int
    filters: Sequence[Predicates] = ()

    def predicates(self, q: Mapping[str, str]) -> list:
        out = []
        for build in self.filters:
            out.extend(build(q))
        return out


ENTITIES: Dict[str, Entity] = {
    "sports": Entity(
        "sports", Sport,
        lambda: [Sport.sport_id.asc()],
        100,
        (_ids(Sport.sport_id),),
    ),
    # newest season first
    "tournaments": Entity(
        "tournaments", Tournament,
        lambda: [Tournament.date_start.desc().nulls_last(),
                 Tournament.tournament_id.asc()],
        50,
        (
            _eq(Tournament.sport_type, "sport_type"),
            _eq(Tournament.region, "region"),
            _flag(Tournament.is_popular),
            _ids(Tournament.tournament_id),
        ),
    ),
    "venues": Entity(
        "venues", Venue,
        lambda: [Venue.official_name.asc().nulls_last(),
                 Venue.venue_id.asc()],
        50,
        (
            _eq(Venue.country, "country"),
            _eq(Venue.city, "city"),
            _flag(Venue.popular_stadium),
            _ids(Venue.venue_id),
        ),
    ),
    "teams": Entity(
        "teams", Team,
        lambda: [Team.official_name.asc().nulls_last(), Team.team_id.asc()],
        50,
        (
            _eq(Team.sport_type, "sport_type"),
            _eq(Team.iso_country, "iso_country"),
            _flag(Team.popular_team),
            _ids(Team.team_id),
        ),
    ),
    "countries": Entity(
        "countries", Country,
        lambda: [Country.country.asc()],
        200,
        (_ids(Country.country),),
    ),
    "cities": Entity(
        "cities", City,
        lambda: [City.city.asc(), City.country.asc()],
        200,
        (_eq(City.country, "country"), _ids(City.city)),
    ),
}


def paginate(page: int, page_size: int, total: int) -> Dict[str, Any]:
    return {
        "page": page,
        "page_size": page_size,
        "total": total,
        "total_pages": math.ceil(total / page_size) if page_size else 0,
        "next_page": page + 1 if page * page_size < total else None,
        "prev_page": page - 1 if page > 1 else None,
    }


def list_envelope(plural: str, rows: List[Dict[str, Any]],
                  pagination: Optional[Dict[str, Any]] = None):
    out: Dict[str, Any] = {plural: rows, "results": rows, "items": rows}
    if pagination is not None:
        out["pagination"] = pagination
    return out


class CatalogStore:
    def __init__(self, Session: async_sessionmaker) -> None:
        self.Session = Session

    async def _rows(self, stmt) -> List[Dict[str, Any]]:
        async with self.Session() as db:
            result = await db.execute(stmt)
            return [row_to_dict(r) for r in result.scalars().all()]

    async def _count(self, stmt) -> int:
        async with self.Session() as db:
            return int((await db.execute(stmt)).scalar_one())

    async def list_entity(
        self, name: str, query: Mapping[str, str]
    ) -> Dict[str, Any]:
        entity = ENTITIES[name]
        page = parse_positive_int(query.get("page"), 1)
        page_size = parse_positive_int(
            query.get("page_size"), entity.default_page_size,
            cap=MAX_PAGE_SIZE,
        )
        conds = entity.predicates(query)
        data_stmt = (
            select(entity.model)
            .where(*conds)
            .order_by(*entity.order_by())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        count_stmt = select(func.count()).select_from(entity.model).where(*conds)

        try:
            async with timeit(f"db.list_{name}"):
                rows, total = await asyncio.gather(
                    self._rows(data_stmt), self._count(count_stmt)
                )
        except STORE_ERRORS as e:
            log.error("catalog.store_error", entity=name, error=str(e))
            raise ApiError(
                ErrorCode.STORE, f"Failed to fetch {name}", message=str(e),
                plural=(name,),
            )
        return list_envelope(name, rows, paginate(page, page_size, total))

    async def categories_for_event(
        self, event_id: Optional[str]
    ) -> Dict[str, Any]:
        """Categories of the venue an event takes place in.

        event -> venue_id -> categories; a missing event or venue is a
        404 with empty lists, never a 500.
        """
        plural = ("categories",)
        if not event_id:
            raise ApiError(ErrorCode.BAD_REQUEST, "event_id required",
                           plural=plural)
        try:
            async with self.Session() as db:
                venue_id = (await db.execute(
                    select(Event.venue_id).where(Event.event_id == event_id)
                )).scalar_one_or_none()
                if not venue_id:
                    raise ApiError(
                        ErrorCode.NOT_FOUND, "Event or venue not found",
                        details=f"no venue for event {event_id}",
                        plural=plural,
                    )
                rows = (await db.execute(
                    select(Category)
                    .where(Category.venue_id == venue_id)
                    .order_by(Category.category_name.asc().nulls_last())
                )).scalars().all()
        except STORE_ERRORS as e:
            log.error("catalog.store_error", entity="categories",
                      error=str(e))
            raise ApiError(
                ErrorCode.STORE, "Failed to fetch categories",
                message=str(e), plural=plural,
            )
        return list_envelope("categories", [row_to_dict(r) for r in rows])

    # ----------------------------
    # sitemap feeds
    # ----------------------------
    async def sitemap_rows(self, name: str, limit: int) -> List[Dict[str, Any]]:
        model = {
            "sports": Sport, "tournaments": Tournament, "events": Event,
            "venues": Venue, "countries": Country, "cities": City,
        }[name]
        stmt = select(model)
        if hasattr(model, "slug"):
            stmt = stmt.where(model.slug.is_not(None))
        return await self._rows(stmt.limit(limit))

    async def tournament_slugs(self, ids: Sequence[str]) -> Dict[str, str]:
        if not ids:
            return {}
        async with self.Session() as db:
            rows = (await db.execute(
                select(Tournament.tournament_id, Tournament.slug)
                .where(Tournament.tournament_id.in_(list(ids)))
            )).all()
        return {tid: slug.lower() for tid, slug in rows if tid and slug}
