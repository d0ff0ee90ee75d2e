from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Literal

from pos_api.database import get_db
from pos_api.services.exceptions import InvalidInputError
from pos_api.services.import_service import ImportService
from pos_api.services.order_service import OrderService
from pos_api.services.realtime_service import schedule_broadcast
from pos_api.schemas.order import (
    OrderCreate,
    OrderImportRequest,
    OrderImportResponse,
    OrderResponse,
)

router = APIRouter(prefix="/orders", tags=["Orders"])


def _not_found(order_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Order with ID {order_id} not found"
    )


@router.get(
    "/",
    response_model=List[OrderResponse],
    summary="List orders",
    description="""
    List active (not finished) or finished orders, newest ticket first.
    Hidden orders are left out unless **includeHidden** is set.
    Finished orders are capped at FINISHED_ORDERS_LIMIT.
    """
)
def list_orders(
    order_status: Literal["active", "finished"] = Query("active", alias="status"),
    include_hidden: bool = Query(False, alias="includeHidden"),
    db: Session = Depends(get_db)
):
    service = OrderService(db)
    if order_status == "finished":
        return service.find_finished(include_hidden)
    return service.find_active(include_hidden)


@router.post(
    "/",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new order",
    description="""
    Create an order from the sales terminal. The order gets the next ticket
    number and starts in **preparing**. Item names and prices are stored as
    sent. Connected displays receive a fresh snapshot.
    """
)
def create_order(
    order_data: OrderCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    service = OrderService(db)

    try:
        order = service.create_order(order_data)
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    response = OrderResponse.model_validate(order)
    schedule_broadcast(background_tasks, db)
    return response


@router.post(
    "/import",
    response_model=OrderImportResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Bulk import orders",
    description="""
    Merge externally supplied orders into the store in one transaction.
    Existing order IDs are replaced, product IDs are matched by ID, then by
    name, and unknown products are created in the imported category.
    """
)
def import_orders(
    import_data: OrderImportRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    service = ImportService(db)

    try:
        imported = service.bulk_import(import_data.orders)
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    response = OrderImportResponse(
        imported=len(imported),
        orders=[OrderResponse.model_validate(o) for o in imported],
    )
    schedule_broadcast(background_tasks, db)
    return response


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order by ID",
    description="Get an order with its items. Hidden orders are returned too."
)
def get_order(
    order_id: str,
    db: Session = Depends(get_db)
):
    service = OrderService(db)
    order = service.get_order(order_id)

    if not order:
        raise _not_found(order_id)

    return order


@router.patch(
    "/{order_id}/finish",
    response_model=OrderResponse,
    summary="Finish an order",
    description="Mark an order finished. Finishing it again is not an error."
)
def finish_order(
    order_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    service = OrderService(db)
    order = service.mark_finished(order_id)

    if not order:
        raise _not_found(order_id)

    response = OrderResponse.model_validate(order)
    schedule_broadcast(background_tasks, db)
    return response


@router.delete(
    "/{order_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Hide an order",
    description="Soft delete: the order stays in the store but leaves default listings."
)
def delete_order(
    order_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    service = OrderService(db)
    deleted = service.delete(order_id)

    if not deleted:
        raise _not_found(order_id)

    schedule_broadcast(background_tasks, db)
    return None
