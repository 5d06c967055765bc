"""
Order data models for the Kitchen Display Service.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel


class OrderStatus(str, Enum):
    """Order statuses the kitchen acts on. Other backend values pass through as plain strings."""
    CREATED = "CREATED"
    PREPARING = "PREPARING"
    READY = "READY"


# Amounts are exact in Python and emitted as JSON numbers, as the Order Service sends them.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class _WireModel(BaseModel):
    """Immutable model using the Order Service's camelCase wire names."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class OrderItem(_WireModel):
    """A single line on an order."""
    id: Optional[int] = None
    item_id: Optional[int] = None
    item_name: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    unit_price: Optional[Money] = Field(default=None, ge=0)


class OrderSnapshot(_WireModel):
    """Point-in-time view of one active order as reported by the Order Service."""
    id: int
    table_id: Optional[int] = None
    user_id: Optional[int] = None
    status: str
    total_amount: Optional[Money] = None
    created_at: Optional[datetime] = None
    items: Tuple[OrderItem, ...] = ()

    @field_validator("items", mode="before")
    @classmethod
    def _null_items(cls, value):
        return () if value is None else value

    @field_validator("status", mode="before")
    @classmethod
    def _status_value(cls, value):
        return value.value if isinstance(value, OrderStatus) else value


# All orders not yet completed, in the order the Order Service returned them.
ActiveOrderSet = Tuple[OrderSnapshot, ...]

ACTIVE_ORDERS_ADAPTER: TypeAdapter = TypeAdapter(ActiveOrderSet)


class ReadyItem(_WireModel):
    """Reduced order line carried by an order-ready event."""
    item_name: Optional[str] = None
    quantity: Optional[int] = None


class OrderReadyEvent(_WireModel):
    """Event emitted once the Order Service confirms an order is READY."""
    order_id: int
    table_id: Optional[int] = None
    items: Tuple[ReadyItem, ...] = ()
    ready_at: datetime

    @classmethod
    def from_snapshot(cls, order: OrderSnapshot, ready_at: Optional[datetime] = None) -> "OrderReadyEvent":
        """Project a confirmed snapshot, dropping prices and line identities."""
        return cls(
            order_id=order.id,
            table_id=order.table_id,
            items=tuple(
                ReadyItem(item_name=item.item_name, quantity=item.quantity)
                for item in order.items
            ),
            ready_at=ready_at or datetime.now(),
        )

    def to_message(self) -> Dict:
        """JSON-compatible payload for the messaging channel."""
        return self.model_dump(mode="json", by_alias=True)


@dataclass(frozen=True)
class ActorContext:
    """Optional caller identity forwarded to the Order Service for audit."""
    user_id: Optional[str] = None
    table_id: Optional[str] = None

    def to_headers(self) -> Dict[str, str]:
        headers = {}
        if self.user_id is not None:
            headers["X-User-ID"] = self.user_id
        if self.table_id is not None:
            headers["X-Table-ID"] = self.table_id
        return headers


class UpdateOrderStatusRequest(BaseModel):
    """Request to update order status."""
    status: str = Field(..., min_length=1, description="Target order status")


def parse_active_orders(payload) -> ActiveOrderSet:
    """Validate a decoded active-orders payload. A null payload is an empty set."""
    if payload is None:
        return ()
    return ACTIVE_ORDERS_ADAPTER.validate_python(payload)


def dump_active_orders(orders: ActiveOrderSet) -> bytes:
    """Serialize active orders to wire JSON."""
    return ACTIVE_ORDERS_ADAPTER.dump_json(orders, by_alias=True)


def load_active_orders(raw) -> ActiveOrderSet:
    """Deserialize active orders from wire JSON."""
    return ACTIVE_ORDERS_ADAPTER.validate_json(raw)
