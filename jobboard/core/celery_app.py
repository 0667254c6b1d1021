"""
Celery application configuration.

This module configures Celery to use Redis as both the message broker and result backend.
Workers run the non-critical background jobs of the API (welcome emails).
"""

from celery import Celery
from jobboard.core.config import settings

# Create Celery instance
celery_app = Celery(
    "jobboard_worker",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL
)

# Configure Celery
celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Timezone
    timezone="UTC",
    enable_utc=True,

    # Task behavior
    task_track_started=True,
    task_time_limit=120,  # Emails never take longer than this
    task_soft_time_limit=90,

    # Result backend
    result_expires=3600,  # Results expire after 1 hour

    # Worker behavior
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=200,
)

# Auto-discover tasks from jobboard.tasks
celery_app.autodiscover_tasks(['jobboard'])
