"""
Recurring Order Service poll.

Polling is the only way order data enters the service. Each cycle fetches
the full active-order set and replaces the cache contents wholesale. A
failed cycle leaves the cache untouched so the last known board keeps
being served; the next tick is the retry.
"""

import asyncio
import time
from typing import TYPE_CHECKING, Any, Dict, Optional

from shared.logging import get_logger
from ..adapters.order_client import OrderServiceClient
from ..caching.tiered_cache import TieredOrderCache
from ..errors import UpstreamError

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_POLLING_INTERVAL_MS = 3000


class OrderPollLoop:
    """Fixed-delay poller that refreshes the tiered cache from the Order Service."""

    def __init__(
        self,
        order_client: OrderServiceClient,
        cache: TieredOrderCache,
        interval_ms: int = DEFAULT_POLLING_INTERVAL_MS,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.order_client = order_client
        self.cache = cache
        self.interval_ms = interval_ms
        self.metrics = metrics
        self.logger = get_logger("kitchen.poller")

        self.running = False
        self._task: Optional[asyncio.Task] = None
        self._cycle_lock = asyncio.Lock()

        self.cycles_completed = 0
        self.cycles_failed = 0
        self.cycles_skipped = 0
        self.last_success_at: Optional[float] = None

        self.logger.info(
            "Order poller initialized",
            interval_ms=interval_ms,
            interval_seconds=interval_ms / 1000.0
        )

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000.0

    async def start(self):
        """Start the background poll task."""
        if self._task is not None and not self._task.done():
            self.logger.warning("Order poller already running")
            return

        self.running = True
        self._task = asyncio.create_task(self._run())
        self.logger.info("Order poller started")

    async def stop(self):
        """Stop the background poll task."""
        self.running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self.logger.info("Order poller stopped")

    def is_running(self) -> bool:
        return self.running and self._task is not None and not self._task.done()

    async def _run(self):
        # Fixed delay: the next cycle is scheduled from the end of the previous one.
        while self.running:
            await self.poll_once()
            await asyncio.sleep(self.interval_seconds)

    async def poll_once(self) -> bool:
        """Run one poll cycle. Returns True when the cache was replaced."""
        if self._cycle_lock.locked():
            self.cycles_skipped += 1
            self._record_cycle("skipped")
            self.logger.warning("Previous poll cycle still running, skipping")
            return False

        async with self._cycle_lock:
            start_time = time.time()
            self.logger.debug("Polling Order Service for active orders")

            try:
                orders = await self.order_client.fetch_active()
            except UpstreamError as e:
                self.cycles_failed += 1
                self._record_cycle("failed")
                self.logger.error("Failed to poll Order Service", code=e.code, error=e.message)
                return False
            except Exception as e:
                self.cycles_failed += 1
                self._record_cycle("failed")
                self.logger.error("Unexpected error polling Order Service", error=str(e), exc_info=True)
                return False

            await self.cache.write(orders)

            self.cycles_completed += 1
            self.last_success_at = time.time()
            self._record_cycle("success", duration=self.last_success_at - start_time, count=len(orders))
            self.logger.info("Polled active orders from Order Service", count=len(orders))
            return True

    def _record_cycle(self, outcome: str, duration: Optional[float] = None, count: Optional[int] = None):
        if self.metrics is None:
            return
        self.metrics.increment_counter("poll_cycles_total", outcome=outcome)
        histogram = self.metrics.get_metric("poll_cycle_duration_seconds")
        if duration is not None and histogram is not None:
            histogram.observe(duration)
        if count is not None:
            self.metrics.set_gauge("active_orders", count)

    def get_stats(self) -> Dict[str, Any]:
        """Get poller statistics."""
        return {
            "running": self.is_running(),
            "interval_ms": self.interval_ms,
            "cycles_completed": self.cycles_completed,
            "cycles_failed": self.cycles_failed,
            "cycles_skipped": self.cycles_skipped,
            "last_success_at": self.last_success_at,
        }
