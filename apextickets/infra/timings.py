# apextickets/infra/timings.py
from __future__ import annotations
import time

import structlog

log = structlog.get_logger(__name__)


class timeit:
    """async usage:
        async with timeit("xs2.events"):
            await fn()

    Emits one ``timing`` debug line per block; nothing is retained.
    """
    __slots__ = ("_kind", "_t0")

    def __init__(self, kind: str):
        self._kind = kind
        self._t0 = 0.0

    async def __aenter__(self):
        # monotonic for durations
        self._t0 = time.perf_counter()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        elapsed = time.perf_counter() - self._t0
        log.debug("timing", kind=self._kind, seconds=round(elapsed, 6),
                  failed=exc_type is not None)
