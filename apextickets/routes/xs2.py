from fastapi import APIRouter, Depends, Request
from fastapi.responses import ORJSONResponse

from ..catalog import ENTITIES, CatalogStore, list_envelope
from ..errors import ApiError, ErrorCode
from ..inventory import InventoryProxy
from .deps import get_catalog, get_proxy

router = APIRouter(prefix="/api/xs2", tags=["xs2"])


# ----------------------------
# Inventory proxy
# ----------------------------
@router.get("/events")
async def list_events(
    request: Request, proxy: InventoryProxy = Depends(get_proxy)
):
    return await proxy.fetch_events(dict(request.query_params))


@router.get("/tickets")
async def list_tickets(
    request: Request, proxy: InventoryProxy = Depends(get_proxy)
):
    status, data = await proxy.fetch_tickets(dict(request.query_params))
    return ORJSONResponse(data, status_code=status)


@router.get("/tickets/groups")
async def ticket_groups(
    event_id: str = "", proxy: InventoryProxy = Depends(get_proxy)
):
    if not event_id:
        raise ApiError(ErrorCode.BAD_REQUEST, "event_id required",
                       plural=("groups",))
    groups = await proxy.ticket_groups(event_id)
    return list_envelope("groups", groups)


# ----------------------------
# Catalog
# ----------------------------
@router.get("/categories")
async def list_categories(
    event_id: str = "", catalog: CatalogStore = Depends(get_catalog)
):
    return await catalog.categories_for_event(event_id)


def _entity_endpoint(name: str):
    async def list_entity(
        request: Request, catalog: CatalogStore = Depends(get_catalog)
    ):
        return await catalog.list_entity(name, request.query_params)
    list_entity.__name__ = f"list_{name}"
    return list_entity


for _name in ENTITIES:
    router.add_api_route(
        f"/{_name}", _entity_endpoint(_name), methods=["GET"],
        name=f"list_{_name}",
    )
