from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy.sql import exists
from typing import Optional, List
import logging

from pos_api.models.product import Product
from pos_api.models.order import OrderItem
from pos_api.schemas.product import ProductCreate, ProductUpdate, ProductResponse
from pos_api.services.exceptions import ConflictError
from pos_api.utils.cache import cache_service
from pos_api.utils.images import extract_image_request, image_columns

logger = logging.getLogger(__name__)


class ProductService:
    """
    Service class for Product CRUD operations.

    This service handles:
    - Creating products, with URL or embedded images
    - Reading products (single reads are cached)
    - Partial updates and visibility toggling
    - Deleting products that no order refers to
    - Cache invalidation
    """

    CACHE_PREFIX = "product"

    def __init__(self, db: Session):
        self.db = db

    def create(self, product_data: ProductCreate) -> Product:
        """
        Create a new product.

        Args:
            product_data: Product creation data

        Returns:
            Created product instance

        Raises:
            InvalidImageError: If image_base64 cannot be decoded
        """
        image = image_columns(extract_image_request(
            product_data.model_dump(
                include={"image_url", "image_base64", "image_mime_type"},
                exclude_unset=True,
            )
        ))

        product = Product(
            name=product_data.name,
            price=product_data.price,
            category=product_data.category,
            amount=product_data.amount,
            hidden=product_data.hidden,
            available=product_data.available,
            **image,
        )
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)

        logger.info(f"Product {product.id} '{product.name}' created")
        return product

    def get_by_id(self, product_id: str) -> Optional[Product]:
        """Get a product by ID."""
        return self.db.query(Product).filter(Product.id == product_id).first()

    def get_by_id_cached(self, product_id: str) -> Optional[dict]:
        """
        Get serialized product details from cache or database.

        Args:
            product_id: Product ID to look up

        Returns:
            Product data as dictionary or None
        """
        cached = cache_service.get(self.CACHE_PREFIX, product_id)
        if cached:
            return cached

        product = self.get_by_id(product_id)
        if not product:
            return None

        product_dict = ProductResponse.from_product(product).model_dump(mode="json")
        cache_service.set(self.CACHE_PREFIX, product_id, product_dict)
        return product_dict

    def get_all(self, category: str = None) -> List[Product]:
        """All products, optionally restricted to one category, by category then name."""
        query = self.db.query(Product)
        if category:
            query = query.filter(Product.category == category)
        return query.order_by(Product.category, Product.name).all()

    def get_available(self) -> List[Product]:
        """Products shown to customers (hidden=False)."""
        return (
            self.db.query(Product)
            .filter(Product.hidden.is_(False))
            .order_by(Product.category, Product.name)
            .all()
        )

    def get_by_category(self, category: str) -> List[Product]:
        return self.get_all(category=category)

    def update(self, product_id: str, product_data: ProductUpdate) -> Optional[Product]:
        """
        Update an existing product.

        Args:
            product_id: ID of product to update
            product_data: Update data (only fields present in the body are applied)

        Returns:
            Updated product or None if not found

        Raises:
            InvalidImageError: If image_base64 cannot be decoded
        """
        # Decode before the lookup so a bad payload is reported as such
        image = image_columns(extract_image_request(product_data.image_fields()))

        product = self.get_by_id(product_id)
        if not product:
            return None

        for field, value in {**product_data.column_updates(), **image}.items():
            setattr(product, field, value)

        self.db.commit()
        self.db.refresh(product)

        self._invalidate_cache(product_id)
        return product

    def toggle_availability(self, product_id: str) -> Optional[Product]:
        """Flip the hidden flag. Returns None if the product doesn't exist."""
        product = self.get_by_id(product_id)
        if not product:
            return None

        product.hidden = not product.hidden
        self.db.commit()
        self.db.refresh(product)

        self._invalidate_cache(product_id)
        logger.info(f"Product {product_id} hidden={product.hidden}")
        return product

    def has_order_references(self, product_id: str) -> bool:
        """True if any order item points at this product."""
        return self.db.query(exists().where(OrderItem.product_id == product_id)).scalar()

    def delete(self, product_id: str) -> bool:
        """
        Delete a product.

        Args:
            product_id: ID of product to delete

        Returns:
            True if deleted, False if not found

        Raises:
            ConflictError: If any order item refers to the product
        """
        product = self.get_by_id(product_id)

        if not product:
            return False

        if self.has_order_references(product_id):
            raise ConflictError(
                "This product appears in one or more orders and cannot be deleted. Hide it instead."
            )

        try:
            self.db.delete(product)
            self.db.commit()
        except IntegrityError as e:
            # An order item referencing the product was committed concurrently
            self.db.rollback()
            logger.warning(f"Foreign key violation deleting product {product_id}: {e}")
            raise ConflictError(
                "This product appears in one or more orders and cannot be deleted. Hide it instead."
            )

        self._invalidate_cache(product_id)
        logger.info(f"Product {product_id} deleted")
        return True

    def _invalidate_cache(self, product_id: str) -> None:
        """Invalidate cache for a product."""
        cache_service.delete(self.CACHE_PREFIX, product_id)
