from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime, timezone
from typing import Optional
import logging

from pos_api.config import get_settings
from pos_api.models.product import Product
from pos_api.models.order import Order, OrderItem
from pos_api.schemas.backup import BackupImportRequest, BackupProduct
from pos_api.services.exceptions import InvalidInputError
from pos_api.services.import_service import ImportService
from pos_api.services.product_service import ProductService
from pos_api.utils.cache import cache_service

logger = logging.getLogger(__name__)

settings = get_settings()

BACKUP_VERSION = "1.0"


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class BackupService:
    """
    Full export and restore of orders and products.

    A restore upserts the listed products by ID, then writes the orders
    through the same reconciliation as a bulk import, all in one transaction.
    Embedded image bytes are not part of the file.
    """

    def __init__(self, db: Session):
        self.db = db

    def export(self) -> dict:
        """Snapshot of every order (hidden included) and every product."""
        orders = (
            self.db.query(Order)
            .options(selectinload(Order.items))
            .order_by(Order.number.desc())
            .all()
        )
        products = self.db.query(Product).order_by(Product.name).all()

        logger.info(f"Backup created: {len(orders)} orders, {len(products)} products")

        return {
            "version": BACKUP_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "orders": [
                {
                    "id": order.id,
                    "number": order.number,
                    "status": order.status.value,
                    "createdAt": _isoformat(order.created_at),
                    "updatedAt": _isoformat(order.updated_at),
                    "hidden": bool(order.hidden),
                    "items": [
                        {
                            "productId": item.product_id,
                            "name": item.name,
                            "price": float(item.price),
                            "quantity": item.quantity,
                        }
                        for item in order.items
                    ],
                }
                for order in orders
            ],
            "products": [
                {
                    "id": product.id,
                    "name": product.name,
                    "price": float(product.price),
                    "category": product.category,
                    "amount": product.amount,
                    "available": bool(product.available),
                    "hidden": bool(product.hidden),
                    "image_url": product.image_url,
                    "createdAt": _isoformat(product.created_at),
                    "updatedAt": _isoformat(product.updated_at),
                }
                for product in products
            ],
        }

    def backup_filename(self) -> str:
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
        return f"{settings.BACKUP_FILENAME_PREFIX}-{stamp}.json"

    def import_backup(self, backup: BackupImportRequest) -> dict:
        """
        Restore a backup file.

        Returns:
            Counts of imported orders and products

        Raises:
            InvalidInputError: If an order references an unknown product that
                cannot be created (nothing is kept)
            SQLAlchemyError: If the database rejects the data (nothing is kept)
        """
        importer = ImportService(self.db)
        try:
            for product in backup.products:
                self._upsert_product(product)
            self.db.flush()

            mapping = importer.resolve_products(backup.orders)
            importer.upsert_orders(backup.orders, mapping, restore=True)
            self.db.commit()
        except InvalidInputError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Backup import failed, rolled back: {e}")
            raise

        cache_service.delete_pattern(f"{ProductService.CACHE_PREFIX}:*")
        logger.info(
            f"Backup import completed: {len(backup.orders)} orders, {len(backup.products)} products"
        )
        return {"orders": len(backup.orders), "products": len(backup.products)}

    def info(self) -> dict:
        """Row counts of the backed-up tables."""
        return {
            "database": {
                "orders": self.db.query(Order).count(),
                "products": self.db.query(Product).count(),
                "order_items": self.db.query(OrderItem).count(),
            },
            "last_backup": None,
        }

    def _upsert_product(self, data: BackupProduct) -> Product:
        product = self.db.query(Product).filter(Product.id == data.id).first()

        if product is not None:
            product.name = data.name
            product.price = data.price
            if data.category:
                product.category = data.category
            if data.available is not None:
                product.available = data.available
            if data.hidden is not None:
                product.hidden = data.hidden
            if "amount" in data.model_fields_set:
                product.amount = data.amount or None
            if data.image_url:
                product.image_url = data.image_url
                product.image_data = None
                product.image_mime_type = None
            return product

        product = Product(
            id=data.id,
            name=data.name,
            price=data.price,
            category=data.category or settings.IMPORTED_PRODUCT_CATEGORY,
            amount=data.amount or None,
            available=True if data.available is None else data.available,
            hidden=bool(data.hidden),
            image_url=data.image_url or None,
        )
        if data.created_at:
            product.created_at = data.created_at
        product.updated_at = data.updated_at or data.created_at or datetime.now(timezone.utc)
        self.db.add(product)
        return product
