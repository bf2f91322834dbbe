"""
Celery tasks for background processing.

Tasks:
- sync_account: Run a manual sync recorded in sync_logs
- process_webhook_queue: Drain one batch of the webhook queue
- requeue_pending_webhooks: Re-enqueue stored events that were never processed
- cleanup_sync_logs: Remove old sync history
"""

from typing import Optional
from uuid import UUID

from celery import Task
from sqlalchemy.orm import Session

from .celery_app import celery_app
from .webhook_worker import WebhookWorker
from ..database.connection import SessionLocal
from ..database.models import SyncLog
from ..services.sync_service import SyncService
from ..utils.logger import get_logger

logger = get_logger(__name__)


class DatabaseTask(Task):
    """
    Base task class that provides database session management.

    Automatically creates and closes database sessions for tasks.
    """
    _db: Optional[Session] = None

    @property
    def db(self) -> Session:
        if self._db is None:
            self._db = SessionLocal()
        return self._db

    def after_return(self, *args, **kwargs):
        """Close database session after task completion."""
        if self._db is not None:
            self._db.close()
            self._db = None


@celery_app.task(
    bind=True,
    base=DatabaseTask,
    name="painel_ml.workers.tasks.sync_account",
)
def sync_account(self, sync_log_id: str) -> dict:
    """
    Execute a recorded sync run.

    Args:
        sync_log_id: UUID of the sync_logs row created when the run was started

    Returns:
        dict: Final status and counters
    """
    db: Session = self.db
    sync_log = db.query(SyncLog).filter(SyncLog.id == UUID(str(sync_log_id))).first()
    if sync_log is None:
        logger.error(f"Sync log {sync_log_id} not found")
        return {"status": "missing", "sync_log_id": sync_log_id}

    logger.info(f"Starting {sync_log.scope} sync for account {sync_log.account_id}")
    sync_log = SyncService(db).run(sync_log)

    return {
        "status": sync_log.status,
        "sync_log_id": str(sync_log.id),
        "items_processed": sync_log.items_processed,
        "orders_processed": sync_log.orders_processed,
        "errors": len(sync_log.errors or []),
    }


@celery_app.task(
    bind=True,
    base=DatabaseTask,
    name="painel_ml.workers.tasks.process_webhook_queue",
)
def process_webhook_queue(self) -> dict:
    return WebhookWorker(self.db).process_queue()


@celery_app.task(
    bind=True,
    base=DatabaseTask,
    name="painel_ml.workers.tasks.requeue_pending_webhooks",
)
def requeue_pending_webhooks(self, limit: int = 20) -> dict:
    return WebhookWorker(self.db).requeue_pending_webhooks(limit)


@celery_app.task(
    bind=True,
    base=DatabaseTask,
    name="painel_ml.workers.tasks.cleanup_sync_logs",
)
def cleanup_sync_logs(self, days: int = 30) -> dict:
    """
    Clean up sync logs older than specified days.

    Returns:
        dict: Cleanup statistics (deleted_count)
    """
    deleted_count = SyncService(self.db).cleanup_old_logs(days)
    return {"deleted_count": deleted_count, "days": days}
