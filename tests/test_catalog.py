import pytest
from sqlalchemy.exc import OperationalError

from apextickets.catalog import CatalogStore, paginate
from apextickets.errors import ApiError
from apextickets.model.db import (
    Category, City, Country, Event, Sport, Team, Tournament, Venue,
)


def _tournaments(n, **kw):
    base = dict(sport_type="football", region="EUROPE")
    base.update(kw)
    return [
        Tournament(tournament_id=f"t{i:02d}", official_name=f"Cup {i}",
                   date_start=f"2025-01-{i + 1:02d}", **base)
        for i in range(n)
    ]


def test_pagination_scenario(client, seed):
    seed(*_tournaments(25),
         *[Tournament(tournament_id=f"x{i}", sport_type="tennis",
                      region="EUROPE") for i in range(3)],
         Tournament(tournament_id="asia", sport_type="football", region="ASIA"))

    r = client.get("/api/xs2/tournaments", params={
        "sport_type": "football", "region": "EUROPE",
        "page": 2, "page_size": 10,
    })
    assert r.status_code == 200
    body = r.json()
    assert len(body["tournaments"]) == 10
    assert body["results"] == body["items"] == body["tournaments"]
    assert body["pagination"] == {
        "page": 2, "page_size": 10, "total": 25, "total_pages": 3,
        "next_page": 3, "prev_page": 1,
    }
    # newest first: page 2 of 25 descending starts at the 15th newest
    assert body["tournaments"][0]["tournament_id"] == "t14"


def test_last_page_has_no_next(client, seed):
    seed(*_tournaments(25))
    body = client.get("/api/xs2/tournaments",
                      params={"page": 3, "page_size": 10}).json()
    assert len(body["tournaments"]) == 5
    assert body["pagination"]["next_page"] is None
    assert body["pagination"]["prev_page"] == 2


def test_invalid_paging_falls_back_to_defaults(client, seed):
    seed(*[Sport(sport_id=s) for s in ("tennis", "football", "motogp")])
    body = client.get("/api/xs2/sports",
                      params={"page": "zero", "page_size": "-5"}).json()
    assert body["pagination"]["page"] == 1
    assert body["pagination"]["page_size"] == 100
    assert [s["sport_id"] for s in body["sports"]] == [
        "football", "motogp", "tennis",
    ]


def test_page_size_is_capped(client, seed):
    seed(Country(country="NLD"))
    body = client.get("/api/xs2/countries", params={"page_size": 10_000}).json()
    assert body["pagination"]["page_size"] == 500


def test_popular_and_ids_filters(client, seed):
    seed(
        Venue(venue_id="v1", official_name="Anfield", country="GBR",
              popular_stadium=True),
        Venue(venue_id="v2", official_name="Wembley", country="GBR",
              popular_stadium=False),
        Venue(venue_id="v3", official_name="Allianz Arena", country="DEU",
              popular_stadium=True),
        Team(team_id="a", official_name="Ajax", sport_type="football"),
        Team(team_id="b", official_name="Benfica", sport_type="football"),
        Team(team_id="c", official_name="Celtic", sport_type="football"),
    )
    venues = client.get("/api/xs2/venues",
                        params={"country": "GBR", "popular": "true"}).json()
    assert [v["venue_id"] for v in venues["venues"]] == ["v1"]
    assert venues["pagination"]["total"] == 1

    teams = client.get("/api/xs2/teams", params={"ids": "a, c"}).json()
    assert [t["official_name"] for t in teams["teams"]] == ["Ajax", "Celtic"]


def test_cities_by_country(client, seed):
    seed(City(city="Amsterdam", country="NLD"),
         City(city="Rotterdam", country="NLD"),
         City(city="Madrid", country="ESP"))
    body = client.get("/api/xs2/cities", params={"country": "NLD"}).json()
    assert [c["city"] for c in body["cities"]] == ["Amsterdam", "Rotterdam"]
    assert body["pagination"]["page_size"] == 200


# ---------- categories ----------

def test_categories_resolve_through_venue(client, seed):
    seed(
        Event(event_id="e1", event_name="Derby", venue_id="v1"),
        Category(category_id="c2", category_name="Upper Tier", venue_id="v1"),
        Category(category_id="c1", category_name="Main Stand", venue_id="v1"),
        Category(category_id="c3", category_name="Elsewhere", venue_id="v9"),
    )
    r = client.get("/api/xs2/categories", params={"event_id": "e1"})
    assert r.status_code == 200
    body = r.json()
    assert [c["category_name"] for c in body["categories"]] == [
        "Main Stand", "Upper Tier",
    ]
    assert body["results"] == body["items"] == body["categories"]


def test_categories_for_event_without_venue_is_404(client, seed):
    seed(Event(event_id="e2", event_name="TBA", venue_id=None))
    r = client.get("/api/xs2/categories", params={"event_id": "e2"})
    assert r.status_code == 404
    body = r.json()
    assert body["categories"] == body["results"] == body["items"] == []


def test_categories_for_unknown_event_is_404(client):
    r = client.get("/api/xs2/categories", params={"event_id": "ghost"})
    assert r.status_code == 404
    assert r.json()["categories"] == []


def test_categories_without_event_id_is_400(client):
    r = client.get("/api/xs2/categories")
    assert r.status_code == 400
    assert r.json()["categories"] == []


# ---------- store level ----------

@pytest.mark.parametrize("page,size,total,expected", [
    (1, 10, 0, {"total_pages": 0, "next_page": None, "prev_page": None}),
    (1, 10, 10, {"total_pages": 1, "next_page": None, "prev_page": None}),
    (1, 10, 11, {"total_pages": 2, "next_page": 2, "prev_page": None}),
    (4, 10, 25, {"total_pages": 3, "next_page": None, "prev_page": 3}),
])
def test_paginate(page, size, total, expected):
    p = paginate(page, size, total)
    for k, v in expected.items():
        assert p[k] == v


async def test_store_failure_renders_envelope(Session, monkeypatch):
    store = CatalogStore(Session)

    async def broken(stmt):
        raise OperationalError("SELECT", {}, Exception("db down"))

    monkeypatch.setattr(store, "_count", broken)
    with pytest.raises(ApiError) as ei:
        await store.list_entity("teams", {})
    body = ei.value.body()
    assert ei.value.status == 500
    assert body["error"] == "Failed to fetch teams"
    assert "db down" in body["message"]
    assert body["teams"] == body["results"] == body["items"] == []


async def test_tournament_slugs_lowercased(Session):
    async with Session() as db:
        async with db.begin():
            db.add_all([
                Tournament(tournament_id="t1", slug="Premier-League"),
                Tournament(tournament_id="t2", slug=None),
            ])
    store = CatalogStore(Session)
    assert await store.tournament_slugs(["t1", "t2", "t3"]) == {
        "t1": "premier-league",
    }
