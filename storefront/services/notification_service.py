# storefront/services/notification_service.py
from storefront.celery_worker import celery_app
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Customer notifications.
    Sent through Celery so the request never waits on delivery.
    """

    @staticmethod
    def send_order_placed(user_id: int, order_id: int):
        send_notification_task.delay(user_id, f"Order {order_id} has been placed")

    @staticmethod
    def send_payment_resolved(user_id: int, payment_id: int, order_id: int, status: str):
        send_notification_task.delay(
            user_id, f"Payment {payment_id} for order {order_id} {status}"
        )


@celery_app.task(name="storefront.services.notification_service.send_notification_task")
def send_notification_task(user_id: int, message: str):
    """
    In a real deployment this would hand off to e-mail/SMS/push.
    For now it only logs.
    """
    logger.info(f"[NOTIFICATION] User {user_id}: {message}")

    return {"user_id": user_id, "message": message, "status": "sent"}
