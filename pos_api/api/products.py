from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from pos_api.database import get_db
from pos_api.services.exceptions import ConflictError, InvalidImageError
from pos_api.services.product_service import ProductService
from pos_api.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
)

router = APIRouter(prefix="/products", tags=["Products"])


def _not_found(product_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Product with ID {product_id} not found"
    )


@router.get(
    "/",
    response_model=List[ProductResponse],
    summary="List all products",
    description="All products sorted by category then name, optionally for one category."
)
def list_products(
    category: Optional[str] = Query(None, description="Only products in this category"),
    db: Session = Depends(get_db)
):
    service = ProductService(db)
    return [ProductResponse.from_product(p) for p in service.get_all(category)]


@router.get(
    "/available",
    response_model=List[ProductResponse],
    summary="List available products",
    description="Products shown at the sales terminal (hidden=false)."
)
def list_available_products(db: Session = Depends(get_db)):
    service = ProductService(db)
    return [ProductResponse.from_product(p) for p in service.get_available()]


@router.get(
    "/category/{category}",
    response_model=List[ProductResponse],
    summary="List products by category"
)
def list_products_by_category(category: str, db: Session = Depends(get_db)):
    service = ProductService(db)
    return [ProductResponse.from_product(p) for p in service.get_by_category(category)]


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Get product by ID",
    description="Get a single product. Results are cached in Redis."
)
def get_product(
    product_id: str,
    db: Session = Depends(get_db)
):
    service = ProductService(db)
    product = service.get_by_id_cached(product_id)

    if not product:
        raise _not_found(product_id)

    return product


@router.post(
    "/",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new product"
)
def create_product(
    product_data: ProductCreate,
    db: Session = Depends(get_db)
):
    """
    Create a new product.

    - **name**, **price** (> 0), **category**: required
    - **amount**, **hidden**: optional
    - **image_url** or **image_base64** (+ **image_mime_type**): optional image
    """
    service = ProductService(db)
    try:
        product = service.create(product_data)
    except InvalidImageError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return ProductResponse.from_product(product)


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Update a product",
    description="Partial update. Setting one image representation clears the other."
)
def update_product(
    product_id: str,
    product_data: ProductUpdate,
    db: Session = Depends(get_db)
):
    service = ProductService(db)
    try:
        product = service.update(product_id, product_data)
    except InvalidImageError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not product:
        raise _not_found(product_id)

    return ProductResponse.from_product(product)


@router.patch(
    "/{product_id}/availability",
    response_model=ProductResponse,
    summary="Toggle product visibility"
)
def toggle_product_availability(
    product_id: str,
    db: Session = Depends(get_db)
):
    service = ProductService(db)
    product = service.toggle_availability(product_id)

    if not product:
        raise _not_found(product_id)

    return ProductResponse.from_product(product)


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a product",
    description="Products that appear in any order cannot be deleted; hide them instead."
)
def delete_product(
    product_id: str,
    db: Session = Depends(get_db)
):
    service = ProductService(db)
    try:
        deleted = service.delete(product_id)
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    if not deleted:
        raise _not_found(product_id)

    return None
