from .client import XS2Client
from .proxy import (
    EVENTS_TAG, ORIGIN_ALL_EVENTS, EventQuery, InventoryProxy,
    apply_defaults, events_envelope, translate_params,
)

__all__ = [
    "XS2Client", "InventoryProxy", "EventQuery",
    "translate_params", "apply_defaults", "events_envelope",
    "EVENTS_TAG", "ORIGIN_ALL_EVENTS",
]
