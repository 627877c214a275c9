# storefront/tasks/payments.py
from functools import lru_cache

from storefront.celery_worker import celery_app
from storefront.data.database import Database
from storefront.services.lock_service import LockService
from storefront.services.payment_service import PaymentService
from storefront.utils.settings import DATABASE_URL, PAYMENT_RESOLUTION_DELAY_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def worker_database() -> Database:
    return Database(DATABASE_URL)


@lru_cache(maxsize=1)
def worker_lock_service() -> LockService:
    return LockService()


def schedule_payment_resolution(payment_id: int) -> None:
    """Enqueue the simulated gateway answer, delivered after a fixed delay."""
    resolve_payment_task.apply_async(args=[payment_id], countdown=PAYMENT_RESOLUTION_DELAY_SECONDS)
    logger.info(f"Resolution of payment {payment_id} scheduled in {PAYMENT_RESOLUTION_DELAY_SECONDS}s")


def _service(db) -> PaymentService:
    return PaymentService(
        db=db,
        schedule=schedule_payment_resolution,
        lock_service=worker_lock_service(),
    )


@celery_app.task(name="storefront.tasks.payments.resolve_payment_task")
def resolve_payment_task(payment_id: int):
    logger.info(f"Resolve payment {payment_id} task started")

    db = worker_database().session()
    try:
        status = _service(db).resolve_payment(payment_id)
        return {"payment_id": payment_id, "status": status}
    except Exception:
        logger.exception(f"Resolution of payment {payment_id} failed")
        raise
    finally:
        db.close()


@celery_app.task(name="storefront.tasks.payments.recover_stuck_payments_task")
def recover_stuck_payments_task():
    logger.info("Recover stuck payments task started")

    db = worker_database().session()
    try:
        rescheduled = _service(db).recover_stuck_payments()
        logger.info(f"Found {len(rescheduled)} stuck payments")
        return rescheduled
    finally:
        db.close()
