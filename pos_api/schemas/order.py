from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional

from pos_api.models.order import OrderStatus


class CamelModel(BaseModel):
    """Order payloads use camelCase keys on the wire."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class OrderItemCreate(CamelModel):
    """A line item as sent by the sales terminal or an import file."""
    product_id: str = Field(..., min_length=1, description="ID of the product sold")
    name: Optional[str] = Field(None, description="Product name at order time (defaults to productId)")
    price: float = Field(..., ge=0, description="Unit price at order time")
    quantity: int = Field(default=1, ge=1, description="Quantity sold")


class OrderCreate(CamelModel):
    """Schema for creating a new order."""
    items: list[OrderItemCreate] = Field(default_factory=list, description="Line items (at least one)")


class OrderItemResponse(CamelModel):
    product_id: str
    name: str
    price: float
    quantity: int


class OrderResponse(CamelModel):
    """Schema for order response, items included."""
    id: str
    number: int
    status: OrderStatus
    hidden: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: list[OrderItemResponse] = []


class OrderSummary(CamelModel):
    """Reduced projection pushed to display clients."""
    id: str
    number: int
    status: OrderStatus
    created_at: Optional[datetime] = None


class ImportOrder(CamelModel):
    """An externally supplied order, identified by its own id and number."""
    id: str = Field(..., min_length=1)
    number: int = Field(..., ge=1)
    status: OrderStatus
    created_at: datetime
    updated_at: Optional[datetime] = None
    hidden: Optional[bool] = None
    items: list[OrderItemCreate] = Field(default_factory=list)


class OrderImportRequest(CamelModel):
    orders: list[ImportOrder]


class OrderImportResponse(CamelModel):
    imported: int
    orders: list[OrderResponse]
