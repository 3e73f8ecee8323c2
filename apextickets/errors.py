"""Error types and the JSON envelope they render to.

Every list-returning route promises its array-valued keys even on error,
so the envelope always carries ``results`` and ``items`` plus the
entity-specific plural (``events``, ``teams``, ...) as empty lists.
"""

from enum import Enum
from typing import Any, Dict, Iterable, Optional

from fastapi import Request
from fastapi.responses import ORJSONResponse


class ErrorCode(Enum):
    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    UPSTREAM = "UPSTREAM"
    STORE = "STORE"
    CONFIG = "CONFIG"


_STATUS = {
    ErrorCode.BAD_REQUEST: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.CONFLICT: 409,
    ErrorCode.UPSTREAM: 500,
    ErrorCode.STORE: 500,
    ErrorCode.CONFIG: 500,
}

FALLBACK_KEYS = ("results", "items")


class ConfigError(RuntimeError):
    """Raised when a required setting is missing."""


class UpstreamError(Exception):
    """Non-2xx answer (or transport failure) from the inventory API."""

    def __init__(self, status: int, details: str) -> None:
        super().__init__(f"XS2 API error {status}: {details}")
        self.status = status
        self.details = details


class ApiError(Exception):
    """An error that renders as a structured JSON envelope."""

    def __init__(
        self,
        code: ErrorCode,
        error: str,
        *,
        status: Optional[int] = None,
        details: Optional[str] = None,
        message: Optional[str] = None,
        plural: Iterable[str] = (),
        echo_status: bool = False,
    ) -> None:
        super().__init__(error)
        self.code = code
        self.error = error
        self.status = status or _STATUS[code]
        self.details = details
        self.message = message
        self.plural = tuple(plural)
        self.echo_status = echo_status

    def body(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"error": self.error}
        if self.echo_status:
            out["status"] = self.status
        if self.details is not None:
            out["details"] = self.details
        if self.message is not None:
            out["message"] = self.message
        return with_fallbacks(out, self.plural)


def with_fallbacks(body: Dict[str, Any], plural: Iterable[str]) -> Dict[str, Any]:
    plural = tuple(plural)
    # bare errors (orders, checkout) carry no list keys
    if not plural:
        return body
    for key in (*plural, *FALLBACK_KEYS):
        body.setdefault(key, [])
    return body


async def api_error_handler(request: Request, exc: ApiError):
    return ORJSONResponse(exc.body(), status_code=exc.status)
