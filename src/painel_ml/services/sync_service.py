"""
Manual account synchronization.

A run is recorded as a SyncLog row; the newest row of an account is its
current status. Runs execute in a Celery worker and walk a bounded number of
search pages so one click never turns into an unbounded crawl.
"""

import time
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from painel_ml.database.models import SyncLog
from painel_ml.marketplaces.mercadolibre_client import MercadoLibreClient, paged_results
from painel_ml.monitoring.prometheus_metrics import get_metrics
from painel_ml.services.accounts import AccountsService
from painel_ml.services.items import ItemsService
from painel_ml.services.orders import OrdersService
from painel_ml.utils.dates import isoformat, to_naive_utc
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

SCOPES = ("items", "orders", "all")
DEFAULT_DAYS = 30
MAX_DAYS = 90

PAGE_SIZE = 50
ITEM_PAGES = 5
ORDER_PAGES = 10
PAGE_DELAY = 0.5

# Celery kills a run after task_time_limit, so a log running longer is dead
STALE_AFTER = timedelta(seconds=1800)


def clamp_days(raw) -> int:
    """Parse the days query value into 1..90, falling back to 30."""
    try:
        days = int(float(raw)) if raw is not None and raw != "" else DEFAULT_DAYS
    except (TypeError, ValueError, OverflowError):
        days = DEFAULT_DAYS
    if days == 0:
        days = DEFAULT_DAYS
    return max(1, min(MAX_DAYS, days))


def idle_status() -> Dict[str, Any]:
    return {
        "running": False,
        "startedAt": None,
        "finishedAt": None,
        "itemsProcessed": 0,
        "ordersProcessed": 0,
        "errors": [],
    }


class SyncService:
    def __init__(self, db: Session, client: Optional[MercadoLibreClient] = None):
        self.db = db
        self._client = client

    def latest(self, account_id: UUID) -> Optional[SyncLog]:
        return (
            self.db.query(SyncLog)
            .filter(SyncLog.account_id == account_id)
            .order_by(SyncLog.started_at.desc())
            .first()
        )

    def start(self, account_id: UUID, scope: str, days: int) -> Tuple[SyncLog, bool]:
        """
        Record a new run unless one is already running.

        Returns:
            (sync_log, created). created is False when the running log was reused.
        """
        current = self.latest(account_id)
        if current is not None and self._is_stale(current):
            logger.warning(f"Sync {current.id} for account {account_id} never finished; marking it failed")
            self.mark_failed(current, "stale")
        elif current is not None and current.running:
            logger.info(f"Sync already running for account {account_id}")
            return current, False

        sync_log = SyncLog(account_id=account_id, scope=scope, days=days, status="running",
                           items_processed=0, orders_processed=0, errors=[])
        try:
            self.db.add(sync_log)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Sync {sync_log.id} started for account {account_id}: scope={scope} days={days}")
        return sync_log, True

    @staticmethod
    def _is_stale(sync_log: SyncLog) -> bool:
        started_at = to_naive_utc(sync_log.started_at)
        return sync_log.running and started_at is not None and datetime.utcnow() - started_at > STALE_AFTER

    def get_status(self, account_id: UUID) -> Dict[str, Any]:
        sync_log = self.latest(account_id)
        if sync_log is None:
            return idle_status()
        if self._is_stale(sync_log):
            self.mark_failed(sync_log, "stale")
        return {
            "running": sync_log.running,
            "startedAt": isoformat(sync_log.started_at),
            "finishedAt": isoformat(sync_log.finished_at),
            "itemsProcessed": sync_log.items_processed or 0,
            "ordersProcessed": sync_log.orders_processed or 0,
            "errors": list(sync_log.errors or []),
        }

    # Execution

    def _add_error(self, sync_log: SyncLog, message: str) -> None:
        # Reassign so the JSON column is flagged dirty
        sync_log.errors = list(sync_log.errors or []) + [message]

    def run(self, sync_log: SyncLog) -> SyncLog:
        """Execute a recorded run to completion. Failures end up in the log, never raised."""
        started = time.time()
        try:
            account = AccountsService(self.db).get_account(sync_log.account_id)
        except Exception:
            return self._finish(sync_log, "failed", started, "account_not_found")

        client = self._client or MercadoLibreClient(self.db, account.id)
        if client.accounts.get_decrypted_tokens(account.id) is None:
            return self._finish(sync_log, "failed", started, "token_not_found")

        try:
            if sync_log.scope in ("items", "all"):
                self._sync_items(sync_log, account.seller_id, ItemsService(self.db, client))
            if sync_log.scope in ("orders", "all"):
                self._sync_orders(sync_log, account.seller_id, OrdersService(self.db, client))
        except Exception as e:
            self.db.rollback()
            logger.error(f"Sync {sync_log.id} failed: {e}")
            return self._finish(sync_log, "failed", started, str(e))

        return self._finish(sync_log, "completed", started)

    def _sync_items(self, sync_log: SyncLog, seller_id: str, items: ItemsService) -> None:
        client = items.client_for(sync_log.account_id)
        offset = 0
        for _ in range(ITEM_PAGES):
            ids = paged_results(client.get_user_items(seller_id, offset=offset, limit=PAGE_SIZE))
            if not ids:
                break

            for item_id in ids:
                try:
                    items.sync_item(sync_log.account_id, str(item_id))
                    sync_log.items_processed = (sync_log.items_processed or 0) + 1
                except Exception as e:
                    self._add_error(sync_log, f"item {item_id}: {e}")
                    time.sleep(PAGE_DELAY)
            self.db.commit()

            offset += PAGE_SIZE
            time.sleep(PAGE_DELAY)

    def _sync_orders(self, sync_log: SyncLog, seller_id: str, orders: OrdersService) -> None:
        client = orders.client_for(sync_log.account_id)
        date_from = datetime.utcnow() - timedelta(days=sync_log.days or DEFAULT_DAYS)
        date_from_param = f"{date_from:%Y-%m-%dT%H:%M:%S}.000Z"

        offset = 0
        for _ in range(ORDER_PAGES):
            results = paged_results(client.search_orders(seller_id, date_from=date_from_param,
                                                         offset=offset, limit=PAGE_SIZE))
            if not results:
                break

            for order_data in results:
                try:
                    orders.upsert_order(sync_log.account_id, order_data)
                    sync_log.orders_processed = (sync_log.orders_processed or 0) + 1
                except Exception as e:
                    self._add_error(sync_log, f"order upsert: {e}")
                    time.sleep(PAGE_DELAY)
            self.db.commit()

            offset += PAGE_SIZE
            time.sleep(PAGE_DELAY)

    def mark_failed(self, sync_log: SyncLog, error: str) -> SyncLog:
        """Close a run that never reached a worker."""
        return self._finish(sync_log, "failed", time.time(), error)

    def _finish(self, sync_log: SyncLog, status: str, started: float, error: Optional[str] = None) -> SyncLog:
        if error:
            self._add_error(sync_log, error)
        sync_log.status = status
        sync_log.finished_at = datetime.utcnow()
        self.db.commit()

        get_metrics().track_sync(sync_log.scope, status, time.time() - started)
        logger.info(
            f"Sync {sync_log.id} {status}: {sync_log.items_processed} items, "
            f"{sync_log.orders_processed} orders, {len(sync_log.errors or [])} errors"
        )
        return sync_log

    def cleanup_old_logs(self, keep_days: int = 30) -> int:
        """Delete finished runs older than keep_days."""
        cutoff = datetime.utcnow() - timedelta(days=keep_days)
        deleted = (
            self.db.query(SyncLog)
            .filter(SyncLog.started_at < cutoff, SyncLog.status != "running")
            .delete(synchronize_session=False)
        )
        self.db.commit()
        logger.info(f"Removed {deleted} old sync log(s)")
        return deleted
