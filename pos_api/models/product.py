import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    LargeBinary,
    Numeric,
    String,
    Text,
)
from sqlalchemy.sql import func

from pos_api.database import Base


def generate_id() -> str:
    return str(uuid.uuid4())


class Product(Base):
    """
    Product model representing items offered at the sales terminal.

    Attributes:
        id: Unique identifier (generated, or supplied by an import)
        name: Display name
        price: Current unit price (must be positive)
        category: Free-text grouping label
        amount: Optional free-text qualifier such as "3 pieces"
        available: Legacy availability flag, kept for older clients
        hidden: Excluded from customer-facing listings when set
        image_url: External image location
        image_data: Embedded image bytes, used only when image_url is unset
        image_mime_type: MIME type of image_data
        created_at: Timestamp when product was created
        updated_at: Timestamp when product was last updated
    """
    __tablename__ = "products"

    id = Column(String(64), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False, index=True)
    price = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    category = Column(String(255), nullable=False, index=True)
    amount = Column(String(255), nullable=True)
    available = Column(Boolean, nullable=False, default=True)
    hidden = Column(Boolean, nullable=False, default=False, index=True)
    image_url = Column(Text, nullable=True)
    image_data = Column(LargeBinary, nullable=True)
    image_mime_type = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint('price > 0', name='check_price_positive'),
    )

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', hidden={self.hidden})>"
