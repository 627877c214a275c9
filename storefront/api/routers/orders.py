# storefront/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from storefront.api.deps import get_db, get_principal
from storefront.api.errors import to_http
from storefront.domain.errors import StorefrontError
from storefront.domain.principal import Principal
from storefront.domain.schemas import OrderOut, OrderStatusIn, OrderUpdate
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("/", response_model=List[OrderOut])
def list_orders(
    user: int | None = Query(None, description="Owner filter, admins only"),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return OrderService(db).list_orders(principal, user_id=user)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        return OrderService(db).get_order(principal, order_id)
    except StorefrontError as e:
        raise to_http(e)


@router.put("/{order_id}", response_model=OrderOut)
def update_order(
    order_id: int,
    payload: OrderUpdate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        return OrderService(db).update_order(
            principal, order_id, new_status=payload.status, shipping_address=payload.shipping_address
        )
    except StorefrontError as e:
        raise to_http(e)


@router.put("/{order_id}/status", response_model=OrderOut)
def update_status(
    order_id: int,
    payload: OrderStatusIn,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        return OrderService(db).update_status(principal, order_id, payload.status)
    except StorefrontError as e:
        raise to_http(e)


@router.delete("/{order_id}", status_code=204)
def delete_order(
    order_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        OrderService(db).delete_order(principal, order_id)
    except StorefrontError as e:
        raise to_http(e)
    return Response(status_code=204)
