"""
Two-tier active-order cache.

The local tier is a process-private reference to the last polled
snapshot, replaced wholesale on every write. The optional shared tier is a
Redis key with a short TTL, shared by every instance of the service. Redis
is a cache only: any failure there degrades to the local tier and is never
surfaced to callers.
"""

import asyncio
import time
from typing import TYPE_CHECKING, List, Optional

import redis.asyncio as redis

from shared.logging import get_logger
from ..errors import CacheTierUnavailable
from ..models import ActiveOrderSet, dump_active_orders, load_active_orders

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


ACTIVE_ORDERS_KEY = "kds:active-orders"
DEFAULT_TTL_SECONDS = 10


class TieredOrderCache:
    """Serves the latest active-order snapshot from Redis, then memory, then empty."""

    def __init__(
        self,
        redis_url: Optional[str] = None,
        *,
        enabled: bool = False,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        socket_timeout: float = 1.0,
        redis_client: Optional[redis.Redis] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.redis_url = redis_url
        self.enabled = enabled
        self.ttl_seconds = ttl_seconds
        self.socket_timeout = socket_timeout
        self.metrics = metrics
        self.logger = get_logger("kitchen.cache")
        self.redis: Optional[redis.Redis] = redis_client

        self._local: Optional[ActiveOrderSet] = None
        self._shared_writes: List[asyncio.Task] = []
        self.last_written_at: Optional[float] = None

    @property
    def shared_tier_active(self) -> bool:
        return self.enabled and self.redis is not None

    async def start(self):
        """Connect the shared tier. An unreachable server is logged; later operations fall back to memory."""
        if not self.enabled:
            self.logger.info("Shared cache tier disabled, serving from memory only")
            return

        if self.redis is None:
            self.redis = redis.from_url(
                self.redis_url,
                socket_connect_timeout=self.socket_timeout,
                socket_timeout=self.socket_timeout,
                health_check_interval=30
            )

        try:
            await self.redis.ping()
            self.logger.info("Shared cache tier connected", ttl_seconds=self.ttl_seconds)
        except Exception as e:
            self.logger.warning("Shared cache tier unreachable at startup (non-critical)", error=str(e))

    async def stop(self):
        """Close the shared tier connection."""
        await self.flush()
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None
            self.logger.info("Shared cache tier closed")

    async def write(self, orders: ActiveOrderSet) -> None:
        """Replace the served snapshot. Never raises and never waits on Redis.

        The shared tier is updated by a background task. A newer write
        cancels every pending one and waits for them to finish before issuing
        its own SET, so an older snapshot never lands after a newer one.
        """
        orders = tuple(orders)

        # Single reference swap: readers see the old or the new set, never a mix.
        self._local = orders
        self.last_written_at = time.time()

        if not self.shared_tier_active:
            return

        superseded = [t for t in self._shared_writes if not t.done()]
        for pending in superseded:
            pending.cancel()

        task = asyncio.create_task(self._replace_shared(orders, superseded))
        task.add_done_callback(self._on_shared_write_done)
        self._shared_writes = superseded + [task]

    async def flush(self):
        """Wait for pending shared-tier writes, if any, to finish."""
        pending = [t for t in self._shared_writes if not t.done()]
        if pending:
            await asyncio.wait(pending)

    async def _replace_shared(self, orders: ActiveOrderSet, superseded: List[asyncio.Task]) -> int:
        if superseded:
            await asyncio.wait(superseded)
        await self._write_shared(orders)
        return len(orders)

    def _on_shared_write_done(self, task: asyncio.Task):
        if task.cancelled():
            self.logger.debug("Shared cache tier write superseded")
            return

        error = task.exception()
        if error is None:
            self.logger.debug("Updated shared cache tier", count=task.result())
        elif isinstance(error, CacheTierUnavailable):
            self.logger.warning("Failed to update shared cache tier (non-critical)", error=error.message)
        else:
            self.logger.warning("Failed to update shared cache tier (non-critical)", error=str(error))

    async def read(self) -> ActiveOrderSet:
        """Return the freshest snapshot available. Never raises."""
        if self.shared_tier_active:
            try:
                cached = await self._read_shared()
                if cached is not None:
                    self._record_read("shared")
                    self.logger.debug("Serving orders from shared cache tier", count=len(cached))
                    return cached
            except CacheTierUnavailable as e:
                self.logger.warning("Failed to read shared cache tier (falling back to memory)", error=e.message)

        local = self._local
        if local is None:
            self._record_read("empty")
            return ()

        self._record_read("local")
        self.logger.debug("Serving orders from in-memory cache", count=len(local))
        return local

    async def _write_shared(self, orders: ActiveOrderSet) -> None:
        try:
            await self.redis.set(ACTIVE_ORDERS_KEY, dump_active_orders(orders), ex=self.ttl_seconds)
        except Exception as e:
            raise CacheTierUnavailable(str(e), details={"operation": "set"}) from e

    async def _read_shared(self) -> Optional[ActiveOrderSet]:
        try:
            raw = await self.redis.get(ACTIVE_ORDERS_KEY)
            if raw is None:
                return None
            return load_active_orders(raw)
        except Exception as e:
            raise CacheTierUnavailable(str(e), details={"operation": "get"}) from e

    def _record_read(self, tier: str):
        if self.metrics is not None:
            self.metrics.increment_counter("cache_reads_total", tier=tier)

    async def health_check(self) -> str:
        """Report shared tier health: ok, error, or disabled."""
        if not self.enabled:
            return "disabled"
        if self.redis is None:
            return "error"
        try:
            await self.redis.ping()
            return "ok"
        except Exception:
            return "error"
