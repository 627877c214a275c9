# storefront/api/routers/checkout.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_db, get_notifier, get_principal
from storefront.api.errors import to_http
from storefront.domain.errors import StorefrontError
from storefront.domain.principal import Principal
from storefront.domain.schemas import CheckoutIn, OrderOut
from storefront.services.checkout_service import CheckoutService
from storefront.services.notification_service import NotificationService

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("/", response_model=OrderOut, status_code=201)
def checkout(
    payload: CheckoutIn,
    principal: Principal = Depends(get_principal),
    notifier: NotificationService = Depends(get_notifier),
    db: Session = Depends(get_db),
):
    """
    Places an order from the caller's cart.
    Stock is reserved and the cart emptied in the same transaction.
    """
    try:
        return CheckoutService(db, notifier=notifier).checkout(principal.user_id, payload.shipping_address)
    except StorefrontError as e:
        raise to_http(e)
