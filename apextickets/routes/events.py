from fastapi import APIRouter, Depends

from ..errors import ApiError, ErrorCode
from ..inventory import InventoryProxy
from ..resolver import resolve_event
from ..slug import resolve_sport_type_from_slug
from .deps import get_proxy

router = APIRouter(prefix="/api/events", tags=["events"])

_PLURAL = ("events",)


@router.get("/resolve")
async def resolve(
    sport: str = "", slug: str = "",
    proxy: InventoryProxy = Depends(get_proxy),
):
    """Event behind a display slug, for a sport type or its route segment."""
    sport_type = resolve_sport_type_from_slug(sport)
    if not sport_type or not slug:
        raise ApiError(ErrorCode.BAD_REQUEST, "sport and slug required",
                       plural=_PLURAL)
    found = await resolve_event(proxy, sport_type, slug)
    if found is None:
        raise ApiError(ErrorCode.NOT_FOUND, "Event not found",
                       details=f"no {sport_type} event matches {slug!r}",
                       plural=_PLURAL)
    event, event_id = found
    return {"event": event, "event_id": event_id}
