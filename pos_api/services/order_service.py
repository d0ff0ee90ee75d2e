from sqlalchemy.orm import Session, selectinload
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import Optional, List
import logging

from pos_api.config import get_settings
from pos_api.models.product import Product
from pos_api.models.order import Order, OrderItem, OrderStatus
from pos_api.schemas.order import OrderCreate
from pos_api.services.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

settings = get_settings()


class OrderService:
    """
    Service class for the order lifecycle.

    ORDER NUMBERING:
    ================
    Ticket numbers are assigned as MAX(number) + 1 inside the same
    transaction as the insert. There is no application-level lock: the
    unique constraint on orders.number is what stops two concurrent
    creations from committing the same number. The loser of such a race
    fails with a database error and the client may retry.

    STATUS AND VISIBILITY:
    ======================
    Orders are created PREPARING and move to FINISHED. The hidden flag is a
    soft delete layered on top of status; listings filter on both.
    """

    def __init__(self, db: Session):
        self.db = db

    def next_order_number(self) -> int:
        """Next ticket number: highest existing number plus one, starting at 1."""
        current = self.db.query(func.max(Order.number)).scalar()
        return (current or 0) + 1

    def create_order(self, order_data: OrderCreate) -> Order:
        """
        Create a new order with its items in one transaction.

        Item name and price are stored as sent. The caller is trusted to send
        current prices; the product table is not consulted.

        Args:
            order_data: Order creation data with at least one item

        Returns:
            Created order instance with items loaded

        Raises:
            InvalidInputError: If there are no items, or an item references
                an unknown product
        """
        if not order_data.items:
            raise InvalidInputError("Items are required")

        try:
            order = Order(
                number=self.next_order_number(),
                status=OrderStatus.PREPARING,
                hidden=False,
            )
            order.items = [
                OrderItem(
                    product_id=item.product_id,
                    name=item.name or item.product_id,
                    price=item.price,
                    quantity=item.quantity,
                    position=position,
                )
                for position, item in enumerate(order_data.items)
            ]

            self.db.add(order)
            self.db.commit()
            self.db.refresh(order)

            logger.info(f"Order #{order.number} ({order.id}) created with {len(order.items)} item(s)")
            return order

        except IntegrityError as e:
            self.db.rollback()
            missing = self._missing_products({item.product_id for item in order_data.items})
            if missing:
                raise InvalidInputError(f"Unknown product(s): {', '.join(sorted(missing))}")
            logger.error(f"Integrity error creating order: {e}")
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating order: {e}")
            raise

    def get_order(self, order_id: str) -> Optional[Order]:
        """Get an order by ID, hidden or not."""
        return (
            self.db.query(Order)
            .options(selectinload(Order.items))
            .filter(Order.id == order_id)
            .first()
        )

    def find_active(self, include_hidden: bool = False) -> List[Order]:
        """Orders not yet finished, newest number first, items loaded in one batch."""
        query = (
            self.db.query(Order)
            .options(selectinload(Order.items))
            .filter(Order.status != OrderStatus.FINISHED)
        )
        if not include_hidden:
            query = query.filter(Order.hidden.is_(False))
        return query.order_by(Order.number.desc()).all()

    def find_finished(self, include_hidden: bool = False, limit: int = None) -> List[Order]:
        """
        Finished orders, newest number first.

        Args:
            include_hidden: Include soft-deleted orders
            limit: Maximum number of orders (defaults to FINISHED_ORDERS_LIMIT)
        """
        query = (
            self.db.query(Order)
            .options(selectinload(Order.items))
            .filter(Order.status == OrderStatus.FINISHED)
        )
        if not include_hidden:
            query = query.filter(Order.hidden.is_(False))
        if limit is None:
            limit = settings.FINISHED_ORDERS_LIMIT
        return query.order_by(Order.number.desc()).limit(limit).all()

    def mark_finished(self, order_id: str) -> Optional[Order]:
        """
        Move an order to FINISHED.

        Finishing an already finished order succeeds and only refreshes
        updated_at.

        Returns:
            Updated order or None if not found
        """
        order = self.get_order(order_id)

        if not order:
            return None

        order.status = OrderStatus.FINISHED
        order.updated_at = func.now()
        self.db.commit()
        self.db.refresh(order)

        logger.info(f"Order #{order.number} finished")
        return order

    def delete(self, order_id: str) -> bool:
        """
        Hide an order. Rows are kept so history and imports stay valid.

        Returns:
            True if the order exists, False otherwise
        """
        order = self.db.query(Order).filter(Order.id == order_id).first()

        if not order:
            return False

        order.hidden = True
        self.db.commit()

        logger.info(f"Order #{order.number} hidden")
        return True

    def _missing_products(self, product_ids: set) -> set:
        found = {
            row[0]
            for row in self.db.query(Product.id).filter(Product.id.in_(product_ids)).all()
        }
        return product_ids - found
