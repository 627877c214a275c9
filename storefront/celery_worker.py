# storefront/celery_worker.py
from celery import Celery

from storefront.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND

celery_app = Celery(
    "storefront",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# task modules must be imported explicitly so the worker registers them
celery_app.conf.imports = (
    "storefront.tasks.payments",
    "storefront.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "recover-stuck-payments-every-minute": {
        "task": "storefront.tasks.payments.recover_stuck_payments_task",
        "schedule": 60.0,
    },
}

celery_app.conf.timezone = "UTC"
# a resolution is acked only after it ran; a worker crash redelivers it
celery_app.conf.task_acks_late = True
