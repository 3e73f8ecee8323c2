from fastapi import APIRouter, Depends
from fastapi.responses import Response
import structlog

from ..catalog import STORE_ERRORS, CatalogStore
from ..config import Settings
from ..errors import ApiError, ErrorCode
from ..sitemap import build_sitemap, cache_headers
from .deps import get_catalog, get_settings

log = structlog.get_logger(__name__)

router = APIRouter(tags=["sitemaps"])


async def _serve(name: str, settings: Settings, catalog: CatalogStore):
    site_url = settings.site_url
    if not site_url:
        raise ApiError(ErrorCode.CONFIG, "PUBLIC_BASE_URL is not set")
    try:
        xml = await build_sitemap(name, site_url, catalog)
    except STORE_ERRORS as e:
        log.error("sitemap.store_error", sitemap=name, error=str(e))
        raise ApiError(ErrorCode.STORE, "Failed to build sitemap",
                       message=str(e))
    headers = cache_headers(name)
    return Response(content=xml, media_type=headers.pop("Content-Type"),
                    headers=headers)


def _endpoint(name: str):
    async def sitemap(
        settings: Settings = Depends(get_settings),
        catalog: CatalogStore = Depends(get_catalog),
    ):
        return await _serve(name, settings, catalog)
    sitemap.__name__ = f"sitemap_{name}"
    return sitemap


router.add_api_route("/sitemap.xml", _endpoint("index"), methods=["GET"],
                     name="sitemap_index")
for _name in ("sports", "tournaments", "events", "venues", "geo"):
    router.add_api_route(
        f"/sitemap-{_name}.xml", _endpoint(_name), methods=["GET"],
        name=f"sitemap_{_name}",
    )
