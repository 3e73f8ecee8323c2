from fastapi import Request

from ..catalog import CatalogStore
from ..config import Settings
from ..inventory import InventoryProxy
from ..orders import OrderStore
from ..payments import PaymentAdapter


# Clients are built once on startup and parked on app.state.
def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(f"{name} not initialized")
    return value


def get_settings(request: Request) -> Settings:
    return _state(request, "settings")


def get_proxy(request: Request) -> InventoryProxy:
    return _state(request, "proxy")


def get_catalog(request: Request) -> CatalogStore:
    return _state(request, "catalog")


def get_orders(request: Request) -> OrderStore:
    return _state(request, "orders")


def get_payments(request: Request) -> PaymentAdapter:
    return _state(request, "payments")
