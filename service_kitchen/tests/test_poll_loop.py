"""
Unit tests for the order poll loop.
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from service_kitchen.app.caching.tiered_cache import TieredOrderCache
from service_kitchen.app.errors import UpstreamProtocolError, UpstreamUnavailable
from service_kitchen.app.models import parse_active_orders
from service_kitchen.app.polling.poll_loop import OrderPollLoop
from shared.test_helpers import OrderDataFactory


@pytest.fixture
def order_client():
    """Mock Order Service client."""
    client = MagicMock()
    client.fetch_active = AsyncMock(return_value=())
    return client


@pytest.fixture
def cache():
    """Local-only cache."""
    return TieredOrderCache(enabled=False)


@pytest.fixture
def poller(order_client, cache):
    return OrderPollLoop(order_client, cache, interval_ms=10)


class TestPollOnce:
    """Test cases for a single poll cycle."""

    @pytest.mark.asyncio
    async def test_successful_cycle_writes_cache(self, poller, order_client, cache):
        orders = parse_active_orders(OrderDataFactory.create_active_orders())
        order_client.fetch_active.return_value = orders

        assert await poller.poll_once() is True

        assert await cache.read() == orders
        assert poller.cycles_completed == 1
        assert poller.last_success_at is not None

    @pytest.mark.asyncio
    async def test_failed_cycle_keeps_previous_snapshot(self, poller, order_client, cache):
        """Test that a failed cycle leaves the cache untouched."""
        orders = parse_active_orders(OrderDataFactory.create_active_orders())
        order_client.fetch_active.return_value = orders
        await poller.poll_once()

        order_client.fetch_active.side_effect = UpstreamUnavailable("timed out")

        assert await poller.poll_once() is False
        assert await cache.read() == orders
        assert poller.cycles_failed == 1

    @pytest.mark.asyncio
    async def test_protocol_error_skips_cycle(self, poller, order_client, cache):
        order_client.fetch_active.side_effect = UpstreamProtocolError()

        assert await poller.poll_once() is False
        assert await cache.read() == ()

    @pytest.mark.asyncio
    async def test_unexpected_error_skips_cycle(self, poller, order_client, cache):
        order_client.fetch_active.side_effect = RuntimeError("bug")

        assert await poller.poll_once() is False
        assert poller.cycles_failed == 1

    @pytest.mark.asyncio
    async def test_poll_fail_then_empty_scenario(self, poller, order_client, cache):
        """Two orders, then a timeout, then an empty board."""
        orders = parse_active_orders(OrderDataFactory.create_active_orders())
        order_client.fetch_active.side_effect = [
            orders,
            UpstreamUnavailable("Order Service timed out"),
            (),
        ]

        await poller.poll_once()
        assert len(await cache.read()) == 2

        await poller.poll_once()
        assert await cache.read() == orders

        await poller.poll_once()
        assert await cache.read() == ()

    @pytest.mark.asyncio
    async def test_overlapping_cycle_is_skipped(self, poller, order_client, cache):
        """Test that cycles never run concurrently."""
        release = asyncio.Event()
        first = parse_active_orders([OrderDataFactory.create_order(1)])

        async def slow_fetch():
            await release.wait()
            return first

        order_client.fetch_active.side_effect = slow_fetch

        running = asyncio.create_task(poller.poll_once())
        await asyncio.sleep(0)

        assert await poller.poll_once() is False
        assert poller.cycles_skipped == 1
        assert order_client.fetch_active.call_count == 1

        release.set()
        assert await running is True
        assert await cache.read() == first

    @pytest.mark.asyncio
    async def test_metrics_recorded(self, order_client, cache):
        metrics = MagicMock()
        poller = OrderPollLoop(order_client, cache, metrics=metrics)
        order_client.fetch_active.return_value = parse_active_orders(OrderDataFactory.create_active_orders())

        await poller.poll_once()

        metrics.increment_counter.assert_called_with("poll_cycles_total", outcome="success")
        metrics.set_gauge.assert_called_with("active_orders", 2)


class TestPollLoopLifecycle:
    """Test cases for the background task."""

    @pytest.mark.asyncio
    async def test_start_polls_repeatedly(self, poller, order_client):
        await poller.start()
        await asyncio.sleep(0.1)

        assert poller.is_running() is True
        assert order_client.fetch_active.call_count >= 2

        await poller.stop()

        assert poller.is_running() is False

    @pytest.mark.asyncio
    async def test_loop_survives_failures(self, poller, order_client):
        """Test that failing cycles do not stop the schedule."""
        order_client.fetch_active.side_effect = UpstreamUnavailable()

        await poller.start()
        await asyncio.sleep(0.1)

        assert poller.is_running() is True
        assert poller.cycles_failed >= 2

        await poller.stop()

    @pytest.mark.asyncio
    async def test_start_twice_keeps_single_task(self, poller):
        await poller.start()
        task = poller._task

        await poller.start()

        assert poller._task is task
        await poller.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start(self, poller):
        await poller.stop()

        assert poller.is_running() is False

    def test_get_stats(self, poller):
        stats = poller.get_stats()

        assert stats["interval_ms"] == 10
        assert stats["cycles_completed"] == 0
        assert stats["running"] is False
