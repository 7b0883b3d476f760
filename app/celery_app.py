from celery import Celery

from app.config import settings

celery_app = Celery("family_vault", include=["app.tasks.inactivity"])

celery_app.conf.broker_url = settings.celery_broker_url
celery_app.conf.task_serializer = "json"
celery_app.conf.result_serializer = "json"
celery_app.conf.accept_content = ["json"]
celery_app.conf.timezone = "UTC"
celery_app.conf.enable_utc = True
celery_app.conf.task_default_queue = "default"

celery_app.conf.beat_schedule = {
    "evaluate-inactivity-triggers": {
        "task": "app.tasks.inactivity.evaluate_inactivity_triggers",
        "schedule": float(settings.inactivity_check_interval_seconds),
    },
}
