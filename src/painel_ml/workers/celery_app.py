"""
Celery application configuration for Painel ML.

This module configures Celery for:
- Manual account syncs started from the dashboard
- Draining the webhook queue
- Scheduled maintenance (Celery Beat)
"""

import os
from celery import Celery
from celery.schedules import crontab
from kombu import Queue

# Get Redis URL from environment
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/1")

celery_app = Celery(
    "painel_ml",
    broker=REDIS_URL,
    backend=CELERY_RESULT_BACKEND,
    include=["painel_ml.workers.tasks"]
)

celery_app.conf.update(
    task_routes={
        "painel_ml.workers.tasks.sync_account": {"queue": "sync"},
        "painel_ml.workers.tasks.process_webhook_queue": {"queue": "webhooks"},
        "painel_ml.workers.tasks.requeue_pending_webhooks": {"queue": "webhooks"},
        "painel_ml.workers.tasks.cleanup_sync_logs": {"queue": "maintenance"},
    },

    task_queues=(
        Queue("sync", routing_key="sync"),
        Queue("webhooks", routing_key="webhooks"),
        Queue("maintenance", routing_key="maintenance"),
        Queue("default", routing_key="default"),
    ),
    task_default_queue="default",
    task_default_routing_key="default",

    task_acks_late=True,  # Acknowledge task after completion
    task_reject_on_worker_lost=True,
    task_time_limit=1800,  # 30 minutes hard limit
    task_soft_time_limit=1740,
    worker_prefetch_multiplier=1,

    result_expires=3600,

    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],

    timezone="UTC",
    enable_utc=True,

    beat_schedule={
        "process-webhook-queue": {
            "task": "painel_ml.workers.tasks.process_webhook_queue",
            "schedule": 30.0,
            "options": {"queue": "webhooks"},
        },
        # Events stored while the queue was unavailable
        "requeue-pending-webhooks": {
            "task": "painel_ml.workers.tasks.requeue_pending_webhooks",
            "schedule": crontab(minute="*/5"),
            "options": {"queue": "webhooks"},
        },
        "cleanup-sync-logs": {
            "task": "painel_ml.workers.tasks.cleanup_sync_logs",
            "schedule": crontab(hour=3, minute=0),
            "options": {"queue": "maintenance"},
        },
    },

    worker_max_tasks_per_child=1000,
    worker_hijack_root_logger=False,
)
