# storefront/api/routers/cart.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_db, get_principal
from storefront.api.errors import to_http
from storefront.domain.errors import StorefrontError
from storefront.domain.principal import Principal
from storefront.domain.schemas import CartOut, ItemIn, QuantityIn
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("/", response_model=CartOut)
def get_cart(principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    return CartService(db).get_cart(principal.user_id)


@router.post("/items", response_model=CartOut)
def add_item(
    payload: ItemIn,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        return CartService(db).add_item(principal.user_id, payload.product_id, payload.quantity)
    except StorefrontError as e:
        raise to_http(e)


@router.put("/items/{product_id}", response_model=CartOut)
def set_quantity(
    product_id: int,
    payload: QuantityIn,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        return CartService(db).set_quantity(principal.user_id, product_id, payload.quantity)
    except StorefrontError as e:
        raise to_http(e)


@router.delete("/items/{product_id}", response_model=CartOut)
def remove_item(
    product_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        return CartService(db).remove_item(principal.user_id, product_id)
    except StorefrontError as e:
        raise to_http(e)
