# storefront/domain/states.py
from storefront.domain.errors import InvalidTransition, ValidationFailed

ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")

PAYMENT_METHODS = ("mobile_money", "card", "cash_on_delivery")
MOBILE_MONEY_PROVIDERS = ("mtn", "vodafone", "airteltigo")

PAYMENT_TRANSITIONS = {
    "pending": ("processing", "cancelled"),
    #gateway already in flight, not cancellable
    "processing": ("completed", "failed"),
    "completed": (),
    "failed": (),
    "cancelled": (),
}


def validate_order_status(status: str) -> str:
    if status not in ORDER_STATUSES:
        raise ValidationFailed(
            f"Invalid order status '{status}', expected one of: {', '.join(ORDER_STATUSES)}"
        )
    return status


def order_transition_allowed(current: str, target: str) -> bool:
    """
    Single policy point for order status moves.

    Permissive: any valid status may follow any other. A stricter graph can
    be dropped in here without touching callers.
    """
    return current in ORDER_STATUSES and target in ORDER_STATUSES


def ensure_payment_transition(current: str, target: str) -> None:
    if target not in PAYMENT_TRANSITIONS.get(current, ()):
        raise InvalidTransition("payment", current, target)
