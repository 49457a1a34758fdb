from __future__ import annotations
"""iot_alerting/workers/celery_app.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Celery app + routage + auto-import des modules de tâches.
"""
from celery import Celery

from iot_alerting.core.config import settings

celery = Celery("iot_alerting", broker=settings.REDIS_URL, backend=settings.REDIS_URL)

# Routage par files
celery.conf.task_routes = {
    "tasks.ingest_reading": {"queue": "ingest"},
}

# Sonde occupée : on réessaie vite, le verrou est court
celery.conf.task_default_retry_delay = 2
celery.conf.task_max_retries = 5

celery.conf.update(
    imports=[
        "iot_alerting.workers.tasks.ingest_tasks",
    ],
)
