"""XML sitemaps built from the mirrored catalog.

Entry builders are pure (rows in, ``{loc, lastmod, changefreq,
priority}`` out) and skip rows that cannot produce a full path; the
rendering goes through the two Jinja2 templates in ``templates/``.
"""

from __future__ import annotations
import os
from typing import Any, Dict, Iterable, List, Optional

from fastapi.templating import Jinja2Templates

from .catalog import CatalogStore
from .helpers import now_ts, parse_lastmod
from .slug import create_slug, sport_slug

TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), "templates")
templates = Jinja2Templates(directory=TEMPLATE_DIR)

SITEMAP_PATHS = (
    "/sitemap-sports.xml",
    "/sitemap-tournaments.xml",
    "/sitemap-events.xml",
    "/sitemap-venues.xml",
    "/sitemap-geo.xml",
)

# s-maxage per sitemap
MAX_AGE = {
    "index": 3600,
    "sports": 1800,
    "tournaments": 1800,
    "events": 900,
    "venues": 1800,
    "geo": 3600,
}
STALE_WHILE_REVALIDATE = 86400

# row limits per query
LIMITS = {
    "sports": 500,
    "tournaments": 2000,
    "events": 5000,
    "venues": 3000,
    "countries": 500,
    "cities": 5000,
}

Entry = Dict[str, Any]


def cache_headers(name: str) -> Dict[str, str]:
    return {
        "Content-Type": "application/xml",
        "Cache-Control": (
            f"public, s-maxage={MAX_AGE[name]}, "
            f"stale-while-revalidate={STALE_WHILE_REVALIDATE}"
        ),
    }


def _entry(site_url: str, path: str, lastmod: Any = None,
           changefreq: Optional[str] = None,
           priority: Optional[float] = None) -> Entry:
    if priority is not None and not 0 <= priority <= 1:
        priority = None
    return {
        "loc": f"{site_url}/{path.lstrip('/')}",
        "lastmod": parse_lastmod(lastmod),
        "changefreq": changefreq,
        "priority": priority,
    }


def _lower(value: Any) -> str:
    return value.lower() if isinstance(value, str) else ""


# ----------------------------
# Entry builders
# ----------------------------
def sport_entries(site_url: str, rows: Iterable[Dict[str, Any]]) -> List[Entry]:
    out = []
    for row in rows:
        slug = sport_slug(row.get("sport_id"))
        if slug:
            out.append(_entry(site_url, slug, row.get("updated_at"),
                              "weekly", 0.8))
    return out


def tournament_entries(site_url: str,
                       rows: Iterable[Dict[str, Any]]) -> List[Entry]:
    out = []
    for row in rows:
        sport = sport_slug(row.get("sport_type"))
        slug = _lower(row.get("slug"))
        if sport and slug:
            out.append(_entry(site_url, f"{sport}/{slug}",
                              row.get("updated_at"), "daily", 0.7))
    return out


def event_entries(site_url: str, rows: Iterable[Dict[str, Any]],
                  tournament_slugs: Dict[str, str]) -> List[Entry]:
    """``/<sport>/<tournament-slug>/<event-slug>``; rows missing any part are dropped."""
    out = []
    for row in rows:
        sport = sport_slug(row.get("sport_type"))
        tournament = tournament_slugs.get(row.get("tournament_id") or "")
        slug = _lower(row.get("slug"))
        if not (sport and tournament and slug):
            continue
        out.append(_entry(
            site_url, f"{sport}/{tournament}/{slug}",
            row.get("updated_at") or row.get("date_start"), "daily", 0.6,
        ))
    return out


def venue_entries(site_url: str, rows: Iterable[Dict[str, Any]]) -> List[Entry]:
    out = []
    for row in rows:
        slug = _lower(row.get("slug"))
        if slug:
            out.append(_entry(site_url, f"venues/{slug}",
                              row.get("updated_at"), "weekly", 0.5))
    return out


def geo_entries(site_url: str, countries: Iterable[Dict[str, Any]],
                cities: Iterable[Dict[str, Any]]) -> List[Entry]:
    out = []
    for row in countries:
        slug = create_slug(row.get("country"))
        if slug:
            out.append(_entry(site_url, slug, row.get("updated_at"),
                              "weekly", 0.4))
    for row in cities:
        country = create_slug(row.get("country"))
        city = create_slug(row.get("city"))
        if country and city:
            out.append(_entry(site_url, f"{country}/{city}",
                              row.get("updated_at"), "weekly", 0.3))
    return out


def index_entries(site_url: str) -> List[Entry]:
    ts = now_ts()
    return [_entry(site_url, p, ts) for p in SITEMAP_PATHS]


# ----------------------------
# Rendering
# ----------------------------
def render_urlset(entries: List[Entry]) -> str:
    return templates.get_template("sitemap_urlset.xml").render(entries=entries)


def render_index(entries: List[Entry]) -> str:
    return templates.get_template("sitemap_index.xml").render(entries=entries)


async def build_sitemap(name: str, site_url: str, catalog: CatalogStore) -> str:
    """Render one named sitemap ('index', 'sports', ..., 'geo')."""
    if name == "index":
        return render_index(index_entries(site_url))
    if name == "sports":
        rows = await catalog.sitemap_rows("sports", LIMITS["sports"])
        return render_urlset(sport_entries(site_url, rows))
    if name == "tournaments":
        rows = await catalog.sitemap_rows("tournaments", LIMITS["tournaments"])
        return render_urlset(tournament_entries(site_url, rows))
    if name == "events":
        rows = await catalog.sitemap_rows("events", LIMITS["events"])
        ids = sorted({r["tournament_id"] for r in rows if r.get("tournament_id")})
        slugs = await catalog.tournament_slugs(ids)
        return render_urlset(event_entries(site_url, rows, slugs))
    if name == "venues":
        rows = await catalog.sitemap_rows("venues", LIMITS["venues"])
        return render_urlset(venue_entries(site_url, rows))
    if name == "geo":
        countries = await catalog.sitemap_rows("countries", LIMITS["countries"])
        cities = await catalog.sitemap_rows("cities", LIMITS["cities"])
        return render_urlset(geo_entries(site_url, countries, cities))
    raise KeyError(name)
