from __future__ import annotations
from typing import Any, Dict, Mapping, Optional, Tuple

import httpx
import structlog

from ..errors import ConfigError, UpstreamError
from ..infra.timings import timeit

log = structlog.get_logger(__name__)


class XS2Client:
    """Thin async wrapper over the XS2 ticket-inventory REST API.

    No HTTP-level caching: responses are cached one layer up, keyed by
    query signature.
    """

    def __init__(self, http: httpx.AsyncClient, api_key: Optional[str],
                 base_url: str) -> None:
        self.http = http
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise ConfigError("XS2_API_KEY missing")
        return {
            "Accept": "application/json",
            "X-Api-Key": self.api_key,
            "Cache-Control": "no-cache",
        }

    async def _send(
        self, path: str, params: Optional[Mapping[str, Any]]
    ) -> httpx.Response:
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = self._headers()
        try:
            async with timeit(f"xs2.{path.split('/')[0]}"):
                return await self.http.get(
                    url, params=dict(params or {}), headers=headers
                )
        except httpx.HTTPError as e:
            log.warning("xs2.transport_error", path=path, error=str(e))
            raise UpstreamError(500, str(e) or type(e).__name__) from e

    async def request(
        self, path: str, params: Optional[Mapping[str, Any]] = None
    ) -> Tuple[int, Any]:
        """(status, decoded JSON) without judging the status."""
        res = await self._send(path, params)
        try:
            return res.status_code, res.json()
        except ValueError:
            status = 500 if res.is_success else res.status_code
            raise UpstreamError(status, res.text[:500])

    async def get(
        self, path: str, params: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, Any]:
        res = await self._send(path, params)
        if not res.is_success:
            log.warning("xs2.error_status", path=path,
                        status=res.status_code)
            raise UpstreamError(res.status_code, res.text)
        try:
            data = res.json()
        except ValueError:
            raise UpstreamError(500, "upstream returned non-JSON body")
        if isinstance(data, list):
            return {"results": data}
        if not isinstance(data, dict):
            return {"results": []}
        return data
