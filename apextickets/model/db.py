from sqlalchemy.orm import declarative_base
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    Integer,
    String,
    Text,
)


Base = declarative_base()

ORDER_PENDING = "pending"
ORDER_PAID = "paid"
ORDER_CANCELLED = "cancelled"
ORDER_STATUSES = (ORDER_PENDING, ORDER_PAID, ORDER_CANCELLED)


# ----------------------------
# Orders (owned by the checkout flow)
# ----------------------------
class Order(Base):
    __tablename__ = "orders"
    id = Column(String, primary_key=True)
    customer_email = Column(String, nullable=False)
    customer_name = Column(String, nullable=True)
    xs2_event_id = Column(String, nullable=False)
    xs2_event_name = Column(String, nullable=True)
    xs2_ticket_ids = Column(JSON, nullable=False, default=list)
    quantity = Column(Integer, nullable=False, default=1)
    total_amount = Column(Integer, nullable=False)  # minor units
    currency = Column(String, nullable=False, default="EUR")
    stripe_payment_intent_id = Column(String, nullable=True, index=True)

    # pending | paid | cancelled
    status = Column(String, nullable=False, default=ORDER_PENDING)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


# ----------------------------
# Catalog mirror (filled by the upstream sync)
# ----------------------------
class Sport(Base):
    __tablename__ = "sports"
    sport_id = Column(String, primary_key=True)
    updated_at = Column(String, nullable=True)


class Country(Base):
    __tablename__ = "countries"
    country = Column(String, primary_key=True)
    updated_at = Column(String, nullable=True)


class City(Base):
    __tablename__ = "cities"
    city = Column(String, primary_key=True)
    country = Column(String, primary_key=True)
    updated_at = Column(String, nullable=True)


class Venue(Base):
    __tablename__ = "venues"
    venue_id = Column(String, primary_key=True)
    official_name = Column(String, nullable=True)
    country = Column(String, nullable=True, index=True)
    city = Column(String, nullable=True)
    popular_stadium = Column(Boolean, nullable=True)
    venue_type = Column(String, nullable=True)
    capacity = Column(Integer, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    slug = Column(String, nullable=True)
    updated_at = Column(String, nullable=True)


class Team(Base):
    __tablename__ = "teams"
    team_id = Column(String, primary_key=True)
    official_name = Column(String, nullable=True)
    popular_team = Column(Boolean, nullable=True)
    sport_type = Column(String, nullable=True, index=True)
    iso_country = Column(String, nullable=True)
    venue_id = Column(String, nullable=True)
    slug = Column(String, nullable=True)
    logo_filename = Column(String, nullable=True)
    updated_at = Column(String, nullable=True)


class Tournament(Base):
    __tablename__ = "tournaments"
    tournament_id = Column(String, primary_key=True)
    official_name = Column(String, nullable=True)
    season = Column(String, nullable=True)
    tournament_type = Column(String, nullable=True)
    region = Column(String, nullable=True)
    sport_type = Column(String, nullable=True, index=True)
    is_popular = Column(Boolean, nullable=True)
    date_start = Column(String, nullable=True)
    date_stop = Column(String, nullable=True)
    slug = Column(String, nullable=True)
    number_events = Column(Integer, nullable=True)
    updated_at = Column(String, nullable=True)


class Event(Base):
    __tablename__ = "events"
    event_id = Column(String, primary_key=True)
    event_name = Column(String, nullable=True)
    date_start = Column(String, nullable=True)
    date_stop = Column(String, nullable=True)
    event_status = Column(String, nullable=True)
    tournament_id = Column(String, nullable=True, index=True)
    tournament_name = Column(String, nullable=True)
    venue_id = Column(String, nullable=True)
    venue_name = Column(String, nullable=True)
    city = Column(String, nullable=True)
    iso_country = Column(String, nullable=True)
    sport_type = Column(String, nullable=True, index=True)
    hometeam_id = Column(String, nullable=True)
    visiting_id = Column(String, nullable=True)
    min_ticket_price_eur = Column(Float, nullable=True)
    max_ticket_price_eur = Column(Float, nullable=True)
    slug = Column(String, nullable=True)
    is_popular = Column(Boolean, nullable=True)
    updated_at = Column(String, nullable=True)


class Category(Base):
    __tablename__ = "categories"
    category_id = Column(String, primary_key=True)
    category_name = Column(String, nullable=True)
    venue_id = Column(String, nullable=True, index=True)
    sport_type = Column(String, nullable=True)
    venue_name = Column(String, nullable=True)
    category_type = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    updated_at = Column(String, nullable=True)


def row_to_dict(obj) -> dict:
    return {c.key: getattr(obj, c.key) for c in obj.__table__.columns}
