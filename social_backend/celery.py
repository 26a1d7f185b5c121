"""
Two queues: ``transcoding`` runs encodes, ``maintenance`` runs the beat sweeps.

    celery -A social_backend worker -Q transcoding --concurrency=2
    celery -A social_backend worker -Q maintenance -B --concurrency=1
"""
import os
from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "social_backend.settings")

celery_app = Celery("social_backend")
celery_app.config_from_object("django.conf:settings", namespace="CELERY")
celery_app.conf.task_routes = {
    "transcoding.tasks.transcode_job": {"queue": "transcoding"},
    "transcoding.tasks.*": {"queue": "maintenance"},
}
celery_app.autodiscover_tasks()
