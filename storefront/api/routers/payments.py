# storefront/api/routers/payments.py
from typing import Callable, List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.api.deps import (
    get_db,
    get_lock_service,
    get_notifier,
    get_payment_scheduler,
    get_principal,
)
from storefront.api.errors import to_http
from storefront.domain.errors import StorefrontError
from storefront.domain.principal import Principal
from storefront.domain.schemas import PaymentAction, PaymentCreate, PaymentOut
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["payments"])


def get_service(
    db: Session = Depends(get_db),
    schedule: Callable[[int], None] = Depends(get_payment_scheduler),
    lock_service: LockService = Depends(get_lock_service),
    notifier: NotificationService = Depends(get_notifier),
) -> PaymentService:
    return PaymentService(db=db, schedule=schedule, lock_service=lock_service, notifier=notifier)


@router.get("/", response_model=List[PaymentOut])
def list_payments(
    order: int | None = Query(None),
    principal: Principal = Depends(get_principal),
    svc: PaymentService = Depends(get_service),
):
    return svc.list_payments(principal, order_id=order)


@router.post("/", response_model=PaymentOut, status_code=201)
def create_payment(
    payload: PaymentCreate,
    principal: Principal = Depends(get_principal),
    svc: PaymentService = Depends(get_service),
):
    try:
        return svc.create_payment(
            principal,
            order_id=payload.order_id,
            method=payload.method,
            provider=payload.provider,
            phone_number=payload.phone_number,
        )
    except StorefrontError as e:
        raise to_http(e)


@router.get("/{payment_id}", response_model=PaymentOut)
def get_payment(
    payment_id: int,
    principal: Principal = Depends(get_principal),
    svc: PaymentService = Depends(get_service),
):
    try:
        return svc.get_payment(principal, payment_id)
    except StorefrontError as e:
        raise to_http(e)


@router.put("/{payment_id}", response_model=PaymentOut)
def payment_action(
    payment_id: int,
    payload: PaymentAction,
    principal: Principal = Depends(get_principal),
    svc: PaymentService = Depends(get_service),
):
    """
    action=process starts the (simulated) gateway and returns at once with
    status `processing`; action=cancel cancels a pending payment.
    """
    try:
        if payload.action == "process":
            return svc.process_payment(principal, payment_id)
        return svc.cancel_payment(principal, payment_id)
    except StorefrontError as e:
        raise to_http(e)
