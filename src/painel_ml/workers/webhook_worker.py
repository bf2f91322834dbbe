"""
Queue consumer.

Drains the webhook queue and turns each message into a resource sync.
A message is deleted only after it was handled; failed messages stay on the
queue and come back after the visibility timeout.
"""

import re
import threading
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from painel_ml.database.models import WebhookEvent
from painel_ml.monitoring.prometheus_metrics import get_metrics
from painel_ml.monitoring.sentry_config import capture_exception
from painel_ml.queue import (
    QueueMessage,
    QueueService,
    WEBHOOK,
    SYNC_ITEM,
    SYNC_ORDER,
    SYNC_SHIPMENT,
    SYNC_QUESTION,
    get_queue,
)
from painel_ml.services.accounts import AccountsService
from painel_ml.services.items import ItemsService
from painel_ml.services.orders import OrdersService
from painel_ml.services.questions import QuestionsService
from painel_ml.services.shipments import ShipmentsService
from painel_ml.services.webhooks import WebhooksService, normalize_topic
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

RESOURCE_ID_PATTERN = re.compile(r"/([^/]+)$")
BATCH_SIZE = 10
REQUEUE_LIMIT = 20


def extract_resource_id(resource: Optional[str]) -> Optional[str]:
    """``/orders/2000001`` -> ``2000001``."""
    match = RESOURCE_ID_PATTERN.search(resource or "")
    return match.group(1) if match else None


class WebhookWorker:
    # One batch at a time per process
    _lock = threading.Lock()

    def __init__(self, db: Session, queue: Optional[QueueService] = None):
        self.db = db
        self.queue = queue or get_queue()
        self.items = ItemsService(db)
        self.orders = OrdersService(db)
        self.shipments = ShipmentsService(db)
        self.questions = QuestionsService(db)

    def process_queue(self) -> Dict[str, Any]:
        if not self._lock.acquire(blocking=False):
            logger.debug("Already processing queue, skipping")
            return {"skipped": True, "received": 0, "processed": 0, "failed": 0}

        received = processed = failed = 0
        try:
            messages = self.queue.receive_messages(BATCH_SIZE)
            received = len(messages)
            if not messages:
                logger.debug("No messages in queue")
            else:
                logger.info(f"Processing {received} message(s) from queue")

            for message in messages:
                try:
                    self.process_message(message)
                    if message.receipt_handle:
                        self.queue.delete_message(message.receipt_handle)
                    processed += 1
                    get_metrics().track_queue_message(message.type, "processed")
                except Exception as e:
                    # Not deleted: redelivered after the visibility timeout
                    self.db.rollback()
                    failed += 1
                    logger.error(f"Error processing message {message.id}: {e}")
                    capture_exception(e, message_id=message.id, message_type=message.type)
                    get_metrics().track_queue_message(message.type, "failed")
        finally:
            self._lock.release()

        return {"received": received, "processed": processed, "failed": failed}

    def process_message(self, message: QueueMessage) -> None:
        logger.info(f"Processing message: {message.type} - {message.id}")

        if message.type == WEBHOOK:
            self._process_webhook(message.payload)
            return

        handler = {
            SYNC_ITEM: self.items.sync_item,
            SYNC_ORDER: self.orders.sync_order,
            SYNC_SHIPMENT: self.shipments.sync_shipment,
            SYNC_QUESTION: self.questions.sync_question,
        }.get(message.type)
        if handler is None:
            logger.warning(f"Unknown message type: {message.type}")
            return

        payload = message.payload
        handler(UUID(str(payload["accountId"])), str(payload["resourceId"]))

    def _process_webhook(self, payload: Dict[str, Any]) -> None:
        event_id = payload.get("eventId")
        topic = payload.get("topic")
        resource = payload.get("resource")
        user_id = payload.get("userId")
        logger.info(f"Processing webhook: {topic} - {event_id}")

        resource_id = extract_resource_id(resource)
        if not resource_id:
            logger.error(f"Could not extract resource ID from: {resource}")
            return

        account = AccountsService(self.db).get_account_by_seller(user_id)
        if account is None:
            logger.error(f"Account not found for userId: {user_id}")
            return

        if topic == "items":
            self.items.sync_item(account.id, resource_id)
        elif topic == "orders":
            self.orders.sync_order(account.id, resource_id)
        elif topic == "shipments":
            self.shipments.sync_shipment(account.id, resource_id)
        elif topic == "questions":
            self.questions.sync_question(account.id, resource_id)
        else:
            logger.warning(f"Unhandled webhook topic: {topic}")

        if event_id:
            WebhooksService(self.db, self.queue).mark_processed(event_id)

    def requeue_pending_webhooks(self, limit: int = REQUEUE_LIMIT) -> Dict[str, int]:
        """Put unprocessed events back on the queue, oldest first."""
        pending = (
            self.db.query(WebhookEvent)
            .filter(WebhookEvent.processed.is_(False))
            .order_by(WebhookEvent.received_at.asc())
            .limit(limit)
            .all()
        )
        if not pending:
            logger.debug("No pending webhooks in database")
            return {"pending": 0, "enqueued": 0, "failed": 0}

        logger.info(f"Found {len(pending)} pending webhook(s)")
        enqueued = failed = 0
        for event in pending:
            try:
                self.queue.enqueue_webhook(event.event_id, normalize_topic(event.topic), event.resource, event.user_id)
                event.attempts = (event.attempts or 0) + 1
                self.db.commit()
                enqueued += 1
            except Exception as e:
                self.db.rollback()
                failed += 1
                logger.error(f"Error enqueuing webhook {event.event_id}: {e}")

        return {"pending": len(pending), "enqueued": enqueued, "failed": failed}
