"""
Order Service client for the Kitchen Display Service.
"""

from typing import Any, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from shared.logging import get_logger
from ..errors import UpstreamProtocolError, UpstreamRejected, UpstreamUnavailable
from ..models import (
    ActiveOrderSet,
    ActorContext,
    OrderSnapshot,
    UpdateOrderStatusRequest,
    parse_active_orders,
)


class OrderServiceClient:
    """Client for fetching active orders and patching order status."""

    def __init__(
        self,
        order_service_base_url: str,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = order_service_base_url.rstrip('/')
        self.timeout = timeout
        self.logger = get_logger("kitchen.order_client")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self):
        """Release pooled connections."""
        await self._client.aclose()

    async def fetch_active(self) -> ActiveOrderSet:
        """Fetch every order that has not reached a terminal state."""
        url = f"{self.base_url}/active"
        response = await self._send("GET", url)

        if response.status_code >= 400:
            self.logger.error(
                "Active orders request failed",
                url=url,
                status_code=response.status_code,
                response=response.text
            )
            raise UpstreamProtocolError(
                f"Unexpected status {response.status_code} fetching active orders",
                details={"status_code": response.status_code}
            )

        payload = self._decode(response, url)
        try:
            orders = parse_active_orders(payload)
        except PydanticValidationError as exc:
            raise UpstreamProtocolError(
                "Active orders payload has an unexpected shape",
                details={"url": url, "errors": exc.error_count()}
            ) from exc

        self.logger.debug("Fetched active orders", count=len(orders))
        return orders

    async def patch_status(
        self,
        order_id: int,
        status: str,
        actor: Optional[ActorContext] = None,
    ) -> OrderSnapshot:
        """Ask the Order Service to move an order to ``status``."""
        url = f"{self.base_url}/{order_id}/status"
        headers = (actor or ActorContext()).to_headers()
        body = UpdateOrderStatusRequest(status=status).model_dump()

        self.logger.info("Calling Order Service to update order status", order_id=order_id, status=status)
        response = await self._send("PATCH", url, json=body, headers=headers)

        if response.status_code >= 400:
            self.logger.warning(
                "Order Service rejected status update",
                order_id=order_id,
                status=status,
                status_code=response.status_code,
                response=response.text
            )
            raise UpstreamRejected(
                response.status_code,
                f"Order {order_id} was not moved to {status}",
                details={"order_id": order_id, "status": status, "body": response.text}
            )

        payload = self._decode(response, url)
        if payload is None:
            raise UpstreamProtocolError(
                f"Order Service returned null response for orderId: {order_id}",
                details={"order_id": order_id}
            )

        try:
            order = OrderSnapshot.model_validate(payload)
        except PydanticValidationError as exc:
            raise UpstreamProtocolError(
                "Order payload has an unexpected shape",
                details={"order_id": order_id, "errors": exc.error_count()}
            ) from exc

        self.logger.info("Order status updated in Order Service", order_id=order_id, status=order.status)
        return order

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Issue a request, mapping transport failures and 5xx to UpstreamUnavailable."""
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            self.logger.error("Order Service timed out", method=method, url=url, error=str(exc))
            raise UpstreamUnavailable("Order Service timed out", details={"url": url}) from exc
        except httpx.HTTPError as exc:
            self.logger.error("Order Service HTTP error", method=method, url=url, error=str(exc))
            raise UpstreamUnavailable(str(exc) or "Order Service unreachable", details={"url": url}) from exc

        if response.status_code >= 500:
            self.logger.error(
                "Order Service error",
                method=method,
                url=url,
                status_code=response.status_code
            )
            raise UpstreamUnavailable(
                f"Unexpected status {response.status_code}",
                details={"url": url, "status_code": response.status_code}
            )

        return response

    def _decode(self, response: httpx.Response, url: str) -> Any:
        """Decode a JSON body; an empty body decodes to None."""
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamProtocolError(
                "Order Service returned a non-JSON body",
                details={"url": url, "status_code": response.status_code}
            ) from exc
