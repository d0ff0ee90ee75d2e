import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from pos_api.database import Base
from pos_api.models.product import generate_id


class OrderStatus(str, enum.Enum):
    """
    Enum for order status.

    New orders start as PREPARING and move to FINISHED. PENDING and COMPLETED
    are accepted from imports and backups but no transition produces them.
    """
    PENDING = "pending"
    PREPARING = "preparing"
    FINISHED = "finished"
    COMPLETED = "completed"


class Order(Base):
    """
    Order model representing a customer ticket.

    Attributes:
        id: Unique identifier (generated, or supplied by an import)
        number: Customer-visible ticket number, unique across orders
        status: Current status of the order
        hidden: Soft-delete flag, orthogonal to status
        created_at: Timestamp when order was created
        updated_at: Timestamp when order was last updated
        items: Line items owned by this order
    """
    __tablename__ = "orders"

    id = Column(String(64), primary_key=True, default=generate_id)
    number = Column(Integer, nullable=False, unique=True)
    status = Column(
        Enum(
            OrderStatus,
            name="order_status",
            values_callable=lambda members: [m.value for m in members],
        ),
        default=OrderStatus.PREPARING,
        nullable=False,
        index=True,
    )
    hidden = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Order(id={self.id}, number={self.number}, status='{self.status}')>"


class OrderItem(Base):
    """
    A line within an order.

    name and price are copied from the caller at order time and are not
    linked to later changes of the product.
    """
    __tablename__ = "order_items"

    id = Column(String(64), primary_key=True, default=generate_id)
    order_id = Column(
        String(64),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = Column(String(64), ForeignKey("products.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    position = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_quantity_positive'),
    )

    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem(order_id={self.order_id}, product_id={self.product_id}, quantity={self.quantity})>"
