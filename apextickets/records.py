"""Boundary normalization for upstream event records.

The inventory API (and older mirrors of it) name the same fields
differently: ``id`` vs ``event_id``, ``name`` vs ``event_name`` vs
``official_name``. Every event entering the system passes through
``normalize_event`` once so the rest of the code reads ``event_id`` and
``event_name`` only.
"""

from typing import Any, Dict, Iterable, List, Optional

import structlog

log = structlog.get_logger(__name__)

_ID_KEYS = ("event_id", "id")
_NAME_KEYS = ("event_name", "name", "official_name")


def _first(raw: Dict[str, Any], keys: Iterable[str]) -> Optional[Any]:
    for k in keys:
        v = raw.get(k)
        if v not in (None, ""):
            return v
    return None


def normalize_event(raw: Any) -> Optional[Dict[str, Any]]:
    """Return the record with canonical keys, or None if unusable."""
    if not isinstance(raw, dict):
        log.warning("records.unrecognized_shape", kind=type(raw).__name__)
        return None
    event_id = _first(raw, _ID_KEYS)
    if event_id is None:
        log.warning("records.event_without_id", keys=sorted(raw.keys()))
        return None
    out = dict(raw)
    out["event_id"] = str(event_id)
    out["event_name"] = _first(raw, _NAME_KEYS)
    return out


def normalize_events(raws: Iterable[Any]) -> List[Dict[str, Any]]:
    out = []
    for raw in raws:
        ev = normalize_event(raw)
        if ev is not None:
            out.append(ev)
    return out


def pick_list(data: Dict[str, Any], *keys: str) -> List[Any]:
    """First list-valued field among ``keys``, then results/items."""
    for k in (*keys, "results", "items"):
        v = data.get(k)
        if isinstance(v, list):
            return v
    return []
