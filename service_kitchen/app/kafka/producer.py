"""
Kafka producer for order-ready events.
"""

import asyncio
import json
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import TYPE_CHECKING, Any, Dict, Optional

from kafka import KafkaProducer

from shared.logging import get_logger
from ..errors import PublishFailure
from ..models import OrderReadyEvent

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class OrderReadyPublisher:
    """Fire-and-forget publisher of order-ready events.

    ``publish`` hands the send to a bounded worker pool and returns at once.
    Send and acknowledgement outcomes are only logged; nothing is retried
    and no failure is raised back to the caller.
    """
    
    def __init__(
        self,
        bootstrap_servers: str,
        topic: str,
        max_workers: int = 4,
        producer: Optional[KafkaProducer] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.bootstrap_servers = bootstrap_servers
        self.topic = topic
        self.metrics = metrics
        self.logger = get_logger("kitchen.kafka.producer")
        self.producer: Optional[KafkaProducer] = producer
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="order-ready")
        self._stats_lock = threading.Lock()
        self.stats = {"submitted": 0, "acknowledged": 0, "failed": 0}
    
    async def start(self):
        """Start the Kafka producer. A broker outage only disables publishing."""
        if self.producer is not None:
            return
        try:
            self.producer = KafkaProducer(
                bootstrap_servers=self.bootstrap_servers,
                value_serializer=lambda x: json.dumps(x).encode('utf-8'),
                key_serializer=lambda x: x.encode('utf-8') if x else None,
                acks='all',
                retries=0,
                linger_ms=10,
                max_block_ms=5000,
                request_timeout_ms=10000
            )
            self.logger.info("Kafka producer started", topic=self.topic)
            
        except Exception as e:
            self.logger.error("Failed to start Kafka producer, order-ready events will be dropped", error=str(e))
    
    async def stop(self):
        """Drain pending hand-offs, then flush and close the producer."""
        await asyncio.to_thread(self._executor.shutdown, True)
        if self.producer:
            producer, self.producer = self.producer, None
            await asyncio.to_thread(producer.flush, 10)
            await asyncio.to_thread(producer.close, 10)
            self.logger.info("Kafka producer stopped")

    def is_running(self) -> bool:
        """Check if the producer is available."""
        return self.producer is not None
    
    def publish(self, event: OrderReadyEvent) -> Optional[Future]:
        """Hand an order-ready event to the worker pool without waiting for it."""
        self.logger.info(
            "Publishing order-ready event",
            order_id=event.order_id,
            table_id=event.table_id
        )
        try:
            if self.producer is None:
                raise PublishFailure("Kafka producer not started", details={"order_id": event.order_id})
            future = self._executor.submit(self._send, event)
        except Exception as e:
            self._record_failure(event.order_id, e)
            return None

        self._bump("submitted")
        future.add_done_callback(partial(self._on_handoff_done, event.order_id))
        return future

    def _send(self, event: OrderReadyEvent):
        # Keyed by order id so consumers see per-order ordering.
        record_future = self.producer.send(
            self.topic,
            key=str(event.order_id),
            value=event.to_message()
        )
        record_future.add_callback(self._on_send_success, event.order_id)
        record_future.add_errback(self._on_send_error, event.order_id)

    def _on_handoff_done(self, order_id: int, future: Future):
        exc = future.exception()
        if exc is not None:
            self._record_failure(order_id, exc)

    def _on_send_success(self, order_id: int, record_metadata):
        self._bump("acknowledged")
        if self.metrics is not None:
            self.metrics.increment_counter("order_ready_events_total", outcome="acknowledged")
        self.logger.info(
            "Order-ready event published successfully",
            order_id=order_id,
            partition=record_metadata.partition,
            offset=record_metadata.offset
        )

    def _on_send_error(self, order_id: int, exc: BaseException):
        self._record_failure(order_id, exc)

    def _record_failure(self, order_id: int, exc: BaseException):
        failure = exc if isinstance(exc, PublishFailure) else PublishFailure(
            str(exc) or type(exc).__name__, details={"order_id": order_id}
        )
        self._bump("failed")
        if self.metrics is not None:
            self.metrics.increment_counter("order_ready_events_total", outcome="failed")
        self.logger.error(
            "Failed to publish order-ready event",
            order_id=order_id,
            code=failure.code,
            error=failure.message
        )

    def _bump(self, key: str):
        with self._stats_lock:
            self.stats[key] += 1

    def get_stats(self) -> Dict[str, Any]:
        """Get publish statistics."""
        with self._stats_lock:
            return {"topic": self.topic, "running": self.is_running(), **self.stats}
