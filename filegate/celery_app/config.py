from celery import Celery

from filegate.config import get_settings
from filegate.database import init_db

settings = get_settings()

init_db()

celery_app = Celery(
    "filegate",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["filegate.celery_app.tasks"],
)

celery_app.conf.beat_schedule = {
    "reconcile-orphaned-blobs": {
        "task": "filegate.celery_app.tasks.reconcile_orphaned_blobs",
        "schedule": float(settings.reconcile_interval_seconds),
    },
    "purge-expired-revocations": {
        "task": "filegate.celery_app.tasks.purge_expired_revocations",
        "schedule": 3600.0,
    },
}
