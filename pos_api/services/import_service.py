from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import func
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional
import logging

from pos_api.config import get_settings
from pos_api.models.product import Product
from pos_api.models.order import Order, OrderItem
from pos_api.schemas.order import ImportOrder
from pos_api.services.exceptions import InvalidInputError
from pos_api.services.product_service import ProductService
from pos_api.utils.cache import cache_service

logger = logging.getLogger(__name__)

settings = get_settings()


@dataclass
class ReferencedProduct:
    """A product as seen through the order items of an import batch."""
    product_id: str
    name: str
    price: float


class ImportService:
    """
    Reconciles externally supplied orders against the store.

    RECONCILIATION:
    ===============
    Runs in two passes inside one transaction.

    1. Product resolution builds a productId -> productId table:
       - an existing product with the same ID is reused untouched
       - otherwise an existing product with the same name is reused, so
         re-imported data with regenerated IDs doesn't duplicate products
       - otherwise a product is created from the item's ID, name and price
         in the imported category
    2. Order upsert replaces orders whose ID exists (items deleted, fields
       overwritten) and inserts the rest verbatim, writing items with the
       remapped product IDs.

    Any failure rolls back the whole batch.
    """

    def __init__(self, db: Session):
        self.db = db

    def bulk_import(self, orders: List[ImportOrder]) -> List[Order]:
        """
        Import a batch of orders atomically.

        Args:
            orders: Orders with caller-chosen ids, numbers and timestamps

        Returns:
            The imported orders with their items

        Raises:
            InvalidInputError: If the batch is empty, or a product that has to be
                created has no positive price
            SQLAlchemyError: If the database rejects the batch (nothing is kept)
        """
        if not orders:
            raise InvalidInputError("Orders array is required")

        try:
            mapping = self.resolve_products(orders)
            imported = self.upsert_orders(orders, mapping)
            self.db.commit()
        except InvalidInputError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Order import failed, batch rolled back: {e}")
            raise

        cache_service.delete_pattern(f"{ProductService.CACHE_PREFIX}:*")
        logger.info(f"Imported {len(imported)} order(s)")
        return [self._reload(order.id) for order in imported]

    def collect_products(self, orders: Iterable[ImportOrder]) -> Dict[str, ReferencedProduct]:
        """
        Distinct product IDs referenced by the batch. A later item wins for the
        name; a positive price is never replaced by a zero one.
        """
        referenced: Dict[str, ReferencedProduct] = {}
        for order in orders:
            for item in order.items:
                previous = referenced.get(item.product_id)
                price = item.price
                if previous is not None and price <= 0:
                    price = previous.price
                referenced[item.product_id] = ReferencedProduct(
                    product_id=item.product_id,
                    name=item.name or item.product_id,
                    price=price,
                )
        return referenced

    def resolve_products(self, orders: Iterable[ImportOrder]) -> Dict[str, str]:
        """
        First pass: decide, per referenced product ID, which stored product
        the order items will point at, creating products where none match.

        Returns:
            Mapping of incoming product ID to stored product ID
        """
        referenced = self.collect_products(orders)
        if not referenced:
            return {}

        existing_ids = {
            row[0]
            for row in self.db.query(Product.id).filter(Product.id.in_(list(referenced))).all()
        }

        names = {product.name for product in referenced.values()}
        ids_by_name: Dict[str, str] = {}
        for product_id, name in (
            self.db.query(Product.id, Product.name)
            .filter(Product.name.in_(names))
            .order_by(Product.created_at, Product.id)
            .all()
        ):
            ids_by_name.setdefault(name, product_id)

        mapping: Dict[str, str] = {}
        for product_id, info in referenced.items():
            if product_id in existing_ids:
                mapping[product_id] = product_id
                logger.debug(f"Import: reusing product {product_id} ({info.name})")
            elif info.name in ids_by_name:
                mapping[product_id] = ids_by_name[info.name]
                logger.info(
                    f"Import: mapping product {product_id} to existing product "
                    f"{ids_by_name[info.name]} with name '{info.name}'"
                )
            else:
                if info.price <= 0:
                    raise InvalidInputError(
                        f"Product {product_id} ({info.name}) is not in the store and "
                        f"has no positive price to create it with"
                    )
                self.db.add(Product(
                    id=product_id,
                    name=info.name,
                    price=info.price,
                    category=settings.IMPORTED_PRODUCT_CATEGORY,
                    available=True,
                    hidden=False,
                ))
                # Later IDs in the same batch with this name alias to the new row
                ids_by_name[info.name] = product_id
                mapping[product_id] = product_id
                logger.info(f"Import: creating product {product_id} ({info.name})")

        self.db.flush()
        return mapping

    def upsert_orders(
        self,
        orders: Iterable[ImportOrder],
        mapping: Dict[str, str],
        restore: bool = False,
    ) -> List[Order]:
        """
        Second pass: replace or insert each order and write its items.

        Args:
            orders: Orders to write
            mapping: Product ID remapping from resolve_products
            restore: Keep updated_at and hidden from the input (backup restore)
                instead of stamping updated_at with the current time

        Returns:
            The written orders
        """
        orders = list(orders)
        existing = {
            order.id: order
            for order in (
                self.db.query(Order)
                .options(selectinload(Order.items))
                .filter(Order.id.in_([o.id for o in orders]))
                .all()
            )
        }

        written: List[Order] = []
        for data in orders:
            order = existing.get(data.id)
            if order is not None:
                logger.debug(f"Import: replacing order {data.id} (#{data.number})")
                order.items = []
                self.db.flush()
                order.number = data.number
                order.status = data.status
                order.created_at = data.created_at
                order.updated_at = self._updated_at(data, restore)
                if restore:
                    order.hidden = bool(data.hidden)
            else:
                logger.debug(f"Import: creating order {data.id} (#{data.number})")
                order = Order(
                    id=data.id,
                    number=data.number,
                    status=data.status,
                    hidden=bool(data.hidden) if restore else False,
                    created_at=data.created_at,
                    updated_at=data.updated_at if restore and data.updated_at else data.created_at,
                )
                self.db.add(order)
                existing[data.id] = order

            order.items = [
                OrderItem(
                    product_id=mapping.get(item.product_id, item.product_id),
                    name=item.name or item.product_id,
                    price=item.price,
                    quantity=item.quantity,
                    position=position,
                )
                for position, item in enumerate(data.items)
            ]
            written.append(order)

        self.db.flush()
        return written

    def _updated_at(self, data: ImportOrder, restore: bool):
        if restore:
            return data.updated_at or data.created_at
        return func.now()

    def _reload(self, order_id: str) -> Optional[Order]:
        return (
            self.db.query(Order)
            .options(selectinload(Order.items))
            .filter(Order.id == order_id)
            .first()
        )
