# storefront/services/payment_service.py
import random
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.payment import PaymentModel
from storefront.domain.errors import (
    AccessDenied,
    DuplicatePayment,
    InvalidTransition,
    NotFound,
    ValidationFailed,
)
from storefront.domain.principal import Principal
from storefront.domain.schemas import PaymentOut
from storefront.domain.states import (
    MOBILE_MONEY_PROVIDERS,
    PAYMENT_METHODS,
    ensure_payment_transition,
)
from storefront.repos.order_repo import OrderRepo
from storefront.repos.payment_repo import PaymentRepo
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.utils.settings import PAYMENT_SUCCESS_RATE, STUCK_PAYMENT_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class RandomSource(Protocol):
    def random(self) -> float: ...


def new_transaction_id() -> str:
    # TXN + epoch millis + 9 upper-case alphanumerics
    return f"TXN{int(time.time() * 1000)}{uuid.uuid4().hex[:9].upper()}"


def payment_to_view(payment: PaymentModel) -> PaymentOut:
    return PaymentOut(
        id=payment.id,
        order_id=payment.order_id,
        user_id=payment.user_id,
        amount=payment.amount,
        method=payment.method,
        provider=payment.provider,
        phone_number=payment.phone_number,
        transaction_id=payment.transaction_id,
        status=payment.status,
        order_status=payment.order.status if payment.order else None,
        created_at=payment.created_at,
        updated_at=payment.updated_at,
    )


class PaymentService:
    """
    Payment lifecycle against a simulated gateway.

        pending -> processing -> completed | failed
        pending -> cancelled

    `process` only flips the payment to `processing` and hands the payment id
    to `schedule`; the outcome is decided later by `resolve`, outside the
    request that started it. Every status change is a conditional UPDATE on
    the expected current status, so racing requests and redelivered tasks
    cannot apply a transition twice.
    """

    def __init__(
        self,
        db: Session,
        schedule: Callable[[int], None],
        lock_service: LockService,
        notifier: NotificationService | None = None,
        rng: RandomSource | None = None,
        success_rate: float = PAYMENT_SUCCESS_RATE,
        stuck_after_seconds: int = STUCK_PAYMENT_SECONDS,
    ):
        self.db = db
        self.repo = PaymentRepo(db)
        self.orders = OrderRepo(db)
        self.schedule = schedule
        self.lock_service = lock_service
        self.notifier = notifier or NotificationService()
        self.rng = rng or random.Random()
        self.success_rate = success_rate
        self.stuck_after_seconds = stuck_after_seconds

    #queries
    def get_payment(self, principal: Principal, payment_id: int) -> PaymentOut:
        return payment_to_view(self._load(principal, payment_id))

    def list_payments(self, principal: Principal, order_id: int | None = None) -> list[PaymentOut]:
        user_id = None if principal.is_admin else principal.user_id
        return [payment_to_view(p) for p in self.repo.list_payments(order_id=order_id, user_id=user_id)]

    #commands
    def create_payment(
        self,
        principal: Principal,
        order_id: int,
        method: str,
        provider: str | None = None,
        phone_number: str | None = None,
    ) -> PaymentOut:
        if method not in PAYMENT_METHODS:
            raise ValidationFailed(
                f"Invalid payment method '{method}', expected one of: {', '.join(PAYMENT_METHODS)}"
            )

        if method == "mobile_money":
            phone_number = (phone_number or "").strip()
            if not provider or not phone_number:
                raise ValidationFailed("Please provide provider and phone number for mobile money")
            if provider not in MOBILE_MONEY_PROVIDERS:
                raise ValidationFailed(
                    f"Invalid mobile money provider '{provider}', "
                    f"expected one of: {', '.join(MOBILE_MONEY_PROVIDERS)}"
                )
        else:
            provider = None
            phone_number = None

        order = self.orders.get_order(order_id)
        if not order:
            raise NotFound("Order not found")

        if not principal.can_access(order.user_id):
            raise AccessDenied("Unauthorized")

        if self.repo.get_by_order(order_id):
            raise DuplicatePayment(order_id)

        try:
            payment = self.repo.create_payment(
                PaymentModel(
                    order_id=order.id,
                    user_id=order.user_id,
                    amount=order.total,
                    method=method,
                    provider=provider,
                    phone_number=phone_number,
                    status="pending",
                )
            )
        except IntegrityError:
            #lost the race on the unique order_id
            self.repo.rollback()
            raise DuplicatePayment(order_id)

        logger.info(
            f"Payment {payment.id} created for order {order_id} "
            f"({method}, amount {payment.amount}) by user {principal.user_id}"
        )
        return payment_to_view(self.repo.get_payment(payment.id))

    def process_payment(self, principal: Principal, payment_id: int) -> PaymentOut:
        """
        Use Case: start gateway processing.
        Returns right away with the `processing` record.
        """
        payment = self._load(principal, payment_id)
        ensure_payment_transition(payment.status, "processing")

        transaction_id = new_transaction_id()
        self._transition(payment, "processing", {"transaction_id": transaction_id})

        try:
            self.lock_service.acquire_resolution_lock(payment_id, transaction_id, ttl=self.stuck_after_seconds)
            self.schedule(payment_id)
        except Exception as e:
            # `processing` is committed; the recovery sweep re-schedules it after STUCK_PAYMENT_SECONDS
            logger.warning(f"Scheduling resolution of payment {payment_id} failed, left to the sweep: {e}")

        logger.info(f"Payment {payment_id} processing, transaction {transaction_id}")
        return payment_to_view(self.repo.get_payment(payment_id))

    def cancel_payment(self, principal: Principal, payment_id: int) -> PaymentOut:
        payment = self._load(principal, payment_id)
        ensure_payment_transition(payment.status, "cancelled")

        self._transition(payment, "cancelled", {})

        logger.info(f"Payment {payment_id} cancelled by user {principal.user_id}")
        return payment_to_view(self.repo.get_payment(payment_id))

    def resolve_payment(self, payment_id: int) -> str | None:
        """
        Deferred step: decide the gateway outcome.

        A failed payment is a business outcome, reported through the status
        only. Returns the new status, or None when the payment was not in
        `processing` any more (already resolved, or unknown).
        """
        payment = self.repo.get_payment(payment_id)
        if payment is None:
            logger.warning(f"Resolution for unknown payment {payment_id} skipped")
            return None
        if payment.status != "processing":
            logger.info(f"Payment {payment_id} already {payment.status}, resolution skipped")
            return None

        outcome = "completed" if self.rng.random() < self.success_rate else "failed"
        order_id, user_id, transaction_id = payment.order_id, payment.user_id, payment.transaction_id

        # payment status is committed first, the order follows in its own commit
        if self.repo.transition(payment_id, "processing", {"status": outcome}) == 0:
            self.repo.rollback()
            logger.info(f"Payment {payment_id} resolved concurrently, skipped")
            return None
        self.repo.commit()
        logger.info(f"Payment {payment_id} {outcome}")

        if outcome == "completed":
            if self.orders.set_status(order_id, "processing", only_from="pending"):
                logger.info(f"Order {order_id} pending -> processing after payment {payment_id}")
            else:
                logger.warning(
                    f"Order {order_id} not pending any more, left as is after payment {payment_id}"
                )
            self.orders.commit()

        if transaction_id:
            self.lock_service.release_resolution_lock(payment_id, transaction_id)
        try:
            self.notifier.send_payment_resolved(user_id, payment_id, order_id, outcome)
        except Exception as e:
            logger.warning(f"Payment {payment_id} {outcome} but notification failed: {e}")
        return outcome

    def recover_stuck_payments(self) -> list[int]:
        """
        Re-schedule payments left in `processing` whose resolution never ran
        (e.g. the worker went away during the delay). A payment is only picked
        up when its resolution lock has expired and we manage to take it again.
        """
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=self.stuck_after_seconds)
        rescheduled = []

        for payment in self.repo.list_stuck(cutoff):
            token = payment.transaction_id or new_transaction_id()
            if not self.lock_service.acquire_resolution_lock(payment.id, token, ttl=self.stuck_after_seconds):
                continue
            self.schedule(payment.id)
            rescheduled.append(payment.id)

        if rescheduled:
            logger.warning(f"Re-scheduled resolution for stuck payments: {rescheduled}")
        return rescheduled

    def _transition(self, payment: PaymentModel, target: str, extra: dict) -> None:
        current = payment.status
        if self.repo.transition(payment.id, current, {"status": target, **extra}) == 0:
            self.repo.rollback()
            fresh = self.repo.get_payment(payment.id)
            raise InvalidTransition("payment", fresh.status if fresh else current, target)
        self.repo.commit()

    def _load(self, principal: Principal, payment_id: int) -> PaymentModel:
        payment = self.repo.get_payment(payment_id)
        if not payment:
            raise NotFound("Payment not found")
        if not principal.can_access(payment.user_id):
            raise AccessDenied("Unauthorized")
        return payment
