from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging as celery_setup_logging

from lexlink.config import settings

app = Celery(
    "lexlink",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_routes={
        "lexlink.tasks.notification_tasks.*": {"queue": "notifications"},
        "lexlink.tasks.booking_tasks.*": {"queue": "bookings"},
    },
    beat_schedule={
        "complete-elapsed-bookings": {
            "task": "lexlink.tasks.booking_tasks.complete_elapsed_bookings",
            "schedule": crontab(minute="*/15"),  # every 15 minutes
        },
    },
)

app.autodiscover_tasks(
    [
        "lexlink.tasks.notification_tasks",
        "lexlink.tasks.booking_tasks",
    ]
)


@celery_setup_logging.connect
def _configure_worker_logging(**kwargs):
    from lexlink.common.logging import setup_logging

    setup_logging()
