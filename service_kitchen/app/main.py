"""
Kitchen Display Service.
"""

from typing import Any, Dict, List, Optional

from fastapi import Header
from fastapi.responses import PlainTextResponse

from shared.base_service import BaseService
from shared.config import ServiceConfig

from .adapters.order_client import OrderServiceClient
from .caching.tiered_cache import TieredOrderCache
from .kafka.producer import OrderReadyPublisher
from .models import ActorContext, OrderSnapshot, UpdateOrderStatusRequest
from .polling.poll_loop import OrderPollLoop
from .relay.status_relay import StatusRelay


class KitchenService(BaseService):
    """Kitchen Display Service implementation."""
    
    def __init__(self, config: Optional[ServiceConfig] = None):
        super().__init__("kitchen", 8085, config=config)
        
        # Initialize components
        self.order_client = OrderServiceClient(
            self.config.order_service_base_url,
            timeout=self.config.http_timeout_seconds
        )
        self.cache = TieredOrderCache(
            self.config.redis_url,
            enabled=self.config.redis_enabled,
            ttl_seconds=self.config.cache_ttl_seconds,
            metrics=self.metrics
        )
        self.publisher = OrderReadyPublisher(
            bootstrap_servers=self.config.kafka_bootstrap,
            topic=self.config.order_ready_topic,
            max_workers=self.config.publisher_workers,
            metrics=self.metrics
        )
        self.poller = OrderPollLoop(
            self.order_client,
            self.cache,
            interval_ms=self.config.polling_interval_ms,
            metrics=self.metrics
        )
        self.relay = StatusRelay(self.order_client, self.publisher, metrics=self.metrics)
        
        self._setup_kitchen_routes()
        self.app.state.kitchen_service = self
    
    def _setup_kitchen_routes(self):
        """Set up kitchen-specific routes."""

        def actor_context(user_id: Optional[str], table_id: Optional[str]) -> ActorContext:
            return ActorContext(user_id=user_id, table_id=table_id)
        
        @self.app.get("/api/kitchen/orders", response_model=List[OrderSnapshot], response_model_by_alias=True)
        async def get_active_orders():
            """Active orders for the kitchen board: shared cache, then memory, then empty."""
            orders = await self.cache.read()
            self.logger.info("Returning active orders", count=len(orders))
            return list(orders)
        
        @self.app.post("/api/kitchen/orders/{order_id}/ready", response_model=OrderSnapshot,
                       response_model_by_alias=True)
        async def mark_order_ready(
            order_id: int,
            x_user_id: Optional[str] = Header(None),
            x_table_id: Optional[str] = Header(None)
        ):
            """Mark an order READY and announce it once the Order Service confirms."""
            return await self.relay.mark_ready(order_id, actor_context(x_user_id, x_table_id))
        
        @self.app.post("/api/kitchen/orders/{order_id}/preparing", response_model=OrderSnapshot,
                       response_model_by_alias=True)
        async def mark_order_preparing(
            order_id: int,
            x_user_id: Optional[str] = Header(None),
            x_table_id: Optional[str] = Header(None)
        ):
            """Change order status to PREPARING."""
            return await self.relay.mark_preparing(order_id, actor_context(x_user_id, x_table_id))
        
        @self.app.post("/api/kitchen/orders/{order_id}/created", response_model=OrderSnapshot,
                       response_model_by_alias=True)
        async def mark_order_created(
            order_id: int,
            x_user_id: Optional[str] = Header(None),
            x_table_id: Optional[str] = Header(None)
        ):
            """Change order status to CREATED."""
            return await self.relay.mark_created(order_id, actor_context(x_user_id, x_table_id))
        
        @self.app.patch("/api/kitchen/orders/{order_id}/status", response_model=OrderSnapshot,
                        response_model_by_alias=True)
        async def update_order_status(
            order_id: int,
            request: UpdateOrderStatusRequest,
            x_user_id: Optional[str] = Header(None),
            x_table_id: Optional[str] = Header(None)
        ):
            """Relay any status to the Order Service."""
            return await self.relay.set_status(order_id, request.status, actor_context(x_user_id, x_table_id))
        
        @self.app.get("/api/kitchen/health", response_class=PlainTextResponse)
        async def kitchen_health():
            return "KDS Service is running"
    
    async def _check_dependencies(self) -> Dict[str, str]:
        """Check kitchen service dependencies."""
        dependencies = {}

        dependencies["redis"] = await self.cache.health_check()
        dependencies["kafka"] = "ok" if self.publisher.is_running() else "error"
        dependencies["poller"] = "ok" if self.poller.is_running() else "error"

        return dependencies
    
    def _get_details(self) -> Dict[str, Any]:
        """Poller and publisher statistics."""
        return {
            "poller": self.poller.get_stats(),
            "publisher": self.publisher.get_stats(),
            "cache_last_written_at": self.cache.last_written_at,
        }
    
    async def start(self):
        """Start kitchen service components."""
        await self.cache.start()
        await self.publisher.start()
        await self.poller.start()

        if self.config.metrics_port:
            self.metrics.start_metrics_server(self.config.metrics_port)
        
        self.logger.info("Kitchen service components started")
    
    async def stop(self):
        """Stop kitchen service components."""
        await self.poller.stop()
        await self.publisher.stop()
        await self.cache.stop()
        await self.order_client.close()
        
        self.logger.info("Kitchen service components stopped")


def create_app():
    """Create kitchen service application."""
    service = KitchenService()
    return service.app


if __name__ == "__main__":
    service = KitchenService()
    service.run()
