"""
Adapters package for the Kitchen Display Service.

Contains the HTTP client wrapper for the Order Service, the single source
of truth for orders. The adapter encapsulates:

- Base URL and request shapes
- Actor header propagation
- Mapping of transport and response failures onto kitchen errors

No retries happen here; the next poll tick is the retry for reads and the
caller decides for writes.
"""

from .order_client import OrderServiceClient

__all__ = [
    "OrderServiceClient",
]
