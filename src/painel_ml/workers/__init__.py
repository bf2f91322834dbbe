"""
Celery workers module for background task processing.
"""

from .celery_app import celery_app
from .tasks import sync_account, process_webhook_queue, requeue_pending_webhooks, cleanup_sync_logs

__all__ = [
    "celery_app",
    "sync_account",
    "process_webhook_queue",
    "requeue_pending_webhooks",
    "cleanup_sync_logs",
]
