"""
Kitchen error taxonomy.

Upstream errors come from the Order Service. On the write path they reach
the caller; on the poll path they only skip a cycle. Cache-tier and
publish failures are never raised past their owning component.
"""

from typing import Any, Dict, Optional

from shared.errors import AccessLayerException, ExternalServiceError

ORDER_SERVICE = "order_service"


class UpstreamError(ExternalServiceError):
    """Base class for Order Service failures."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(code, ORDER_SERVICE, message, details)


class UpstreamUnavailable(UpstreamError):
    """Order Service could not be reached or failed internally."""

    status_code = 503

    def __init__(self, message: str = "Order Service unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("UPSTREAM_UNAVAILABLE", message, details)


class UpstreamProtocolError(UpstreamError):
    """Order Service answered with an unexpected or malformed response."""

    status_code = 502

    def __init__(self, message: str = "Malformed Order Service response", details: Optional[Dict[str, Any]] = None):
        super().__init__("UPSTREAM_PROTOCOL_ERROR", message, details)


class UpstreamRejected(UpstreamError):
    """Order Service refused to apply the requested transition."""

    def __init__(self, upstream_status: int, message: str = "Order Service rejected the request",
                 details: Optional[Dict[str, Any]] = None):
        self.upstream_status = upstream_status
        self.status_code = upstream_status if 400 <= upstream_status < 500 else 422
        super().__init__("UPSTREAM_REJECTED", message, {"upstream_status": upstream_status, **(details or {})})


class CacheTierUnavailable(AccessLayerException):
    """Shared cache tier read or write failed."""

    def __init__(self, message: str = "Shared cache tier unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("CACHE_TIER_UNAVAILABLE", message, details)


class PublishFailure(AccessLayerException):
    """Order-ready event could not be handed to or acknowledged by the broker."""

    def __init__(self, message: str = "Failed to publish order-ready event", details: Optional[Dict[str, Any]] = None):
        super().__init__("PUBLISH_FAILURE", message, details)
