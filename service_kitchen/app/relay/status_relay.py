"""
Write path for order status changes.

The Order Service decides whether a transition is legal; the relay only
forwards it. A READY transition publishes an order-ready event, but only
after the Order Service has confirmed it. A publish failure never undoes
or fails the confirmed transition.
"""

from typing import TYPE_CHECKING, Optional

from shared.logging import get_logger
from ..adapters.order_client import OrderServiceClient
from ..kafka.producer import OrderReadyPublisher
from ..models import ActorContext, OrderReadyEvent, OrderSnapshot, OrderStatus

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


def _status_event_name(status: str) -> str:
    # Status comes from the caller; unknown values share one label.
    try:
        return f"order_{OrderStatus(status).value.lower()}"
    except ValueError:
        return "order_other"


class StatusRelay:
    """Relays status transitions to the Order Service and announces READY orders."""

    def __init__(
        self,
        order_client: OrderServiceClient,
        publisher: OrderReadyPublisher,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.order_client = order_client
        self.publisher = publisher
        self.metrics = metrics
        self.logger = get_logger("kitchen.relay")

    async def set_status(
        self,
        order_id: int,
        target_status: str,
        actor: Optional[ActorContext] = None,
    ) -> OrderSnapshot:
        """Move an order to ``target_status`` and return the Order Service's view of it.

        Upstream errors propagate unchanged and nothing is published.
        """
        actor = actor or ActorContext()
        if isinstance(target_status, OrderStatus):
            target_status = target_status.value

        self.logger.info(
            "Updating order status",
            order_id=order_id,
            status=target_status,
            user_id=actor.user_id,
            table_id=actor.table_id
        )

        updated_order = await self.order_client.patch_status(order_id, target_status, actor)

        if self.metrics is not None:
            self.metrics.record_business_event(_status_event_name(target_status))

        if target_status == OrderStatus.READY:
            self._announce_ready(updated_order)

        return updated_order

    async def mark_ready(self, order_id: int, actor: Optional[ActorContext] = None) -> OrderSnapshot:
        return await self.set_status(order_id, OrderStatus.READY, actor)

    async def mark_preparing(self, order_id: int, actor: Optional[ActorContext] = None) -> OrderSnapshot:
        return await self.set_status(order_id, OrderStatus.PREPARING, actor)

    async def mark_created(self, order_id: int, actor: Optional[ActorContext] = None) -> OrderSnapshot:
        return await self.set_status(order_id, OrderStatus.CREATED, actor)

    def _announce_ready(self, order: OrderSnapshot):
        # The order is already READY upstream; failures here only lose the notification.
        try:
            event = OrderReadyEvent.from_snapshot(order)
            self.publisher.publish(event)
        except Exception as e:
            self.logger.error(
                "Failed to publish order-ready event (order is still READY)",
                order_id=order.id,
                error=str(e)
            )
            return

        self.logger.info("Order-ready event handed to publisher", order_id=order.id)
