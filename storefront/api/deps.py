# storefront/api/deps.py
from functools import lru_cache
from typing import Callable, Iterator

from fastapi import Header, HTTPException, Request
from sqlalchemy.orm import Session

from storefront.domain.principal import ROLES, Principal
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()


def get_principal(
    x_user_id: int | None = Header(None),
    x_user_role: str = Header("customer"),
) -> Principal:
    """Identity forwarded by the gateway in front of this service."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail={"error": "unauthorized", "message": "Unauthorized"})
    if x_user_role not in ROLES:
        raise HTTPException(status_code=401, detail={"error": "unauthorized", "message": "Unknown role"})
    return Principal(user_id=x_user_id, role=x_user_role)


@lru_cache(maxsize=1)
def get_lock_service() -> LockService:
    return LockService()


def get_notifier() -> NotificationService:
    return NotificationService()


def get_payment_scheduler() -> Callable[[int], None]:
    from storefront.tasks.payments import schedule_payment_resolution

    return schedule_payment_resolution
