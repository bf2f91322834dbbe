"""
Webhook intake.

Notifications are deduplicated by their MercadoLibre event id, stored, and
handed to the queue. The worker performs the actual resource sync and marks
the event processed; events that never made it onto the queue are picked up
again by the pending sweep.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from painel_ml.database.models import WebhookEvent
from painel_ml.monitoring.prometheus_metrics import get_metrics
from painel_ml.queue import QueueService, get_queue
from painel_ml.utils.exceptions import ValidationError
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

# MercadoLibre notifies order changes on the orders_v2 topic
TOPIC_ALIASES = {"orders_v2": "orders"}


def normalize_topic(topic: str) -> str:
    return TOPIC_ALIASES.get(topic, topic)


class WebhooksService:
    def __init__(self, db: Session, queue: Optional[QueueService] = None):
        self.db = db
        self.queue = queue or get_queue()

    def process_webhook(self, payload: Dict[str, Any]) -> bool:
        """
        Store and enqueue a notification.

        Returns:
            False when the event id was already received, True otherwise.
        """
        event_id = payload.get("_id")
        topic = payload.get("topic")
        resource = payload.get("resource")
        if not event_id or not topic or not resource:
            raise ValidationError("Webhook payload requires _id, topic and resource", field="_id", value=event_id)

        event_id = str(event_id)
        logger.info(f"Webhook received: {topic} | event_id: {event_id}")

        existing = self.db.query(WebhookEvent).filter(WebhookEvent.event_id == event_id).first()
        if existing is not None:
            logger.warning(f"Duplicate webhook ignored: {event_id}")
            get_metrics().track_webhook(topic, "duplicate")
            return False

        user_id = payload.get("user_id")
        application_id = payload.get("application_id")
        event = WebhookEvent(
            event_id=event_id,
            topic=topic,
            resource=resource,
            user_id=str(user_id) if user_id is not None else None,
            application_id=str(application_id) if application_id is not None else None,
            attempts=payload.get("attempts") or 1,
            payload=payload,
        )
        try:
            self.db.add(event)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Webhook saved: {event_id} | topic: {topic}")

        try:
            self.queue.enqueue_webhook(event_id, normalize_topic(topic), resource, event.user_id)
        except Exception as e:
            # Left unprocessed, the requeue sweep retries it
            logger.error(f"Webhook {event_id} stored but not enqueued: {e}")
            get_metrics().track_webhook(topic, "enqueue_failed")
            return True

        get_metrics().track_webhook(topic, "ok")
        return True

    def get_pending_events(self, limit: int = 100) -> List[WebhookEvent]:
        return (
            self.db.query(WebhookEvent)
            .filter(WebhookEvent.processed.is_(False))
            .order_by(WebhookEvent.received_at.asc())
            .limit(limit)
            .all()
        )

    def mark_processed(self, event_id: str) -> bool:
        event = self.db.query(WebhookEvent).filter(WebhookEvent.event_id == event_id).first()
        if event is None:
            logger.warning(f"Cannot mark unknown webhook event {event_id} as processed")
            return False
        event.processed = True
        event.processed_at = datetime.utcnow()
        self.db.commit()
        return True

    def get_stats(self) -> Dict[str, Any]:
        total = self.db.query(WebhookEvent).count()
        processed = self.db.query(WebhookEvent).filter(WebhookEvent.processed.is_(True)).count()
        by_topic = (
            self.db.query(WebhookEvent.topic, func.count(WebhookEvent.id))
            .group_by(WebhookEvent.topic)
            .order_by(WebhookEvent.topic)
            .all()
        )
        return {
            "total": total,
            "processed": processed,
            "pending": total - processed,
            "byTopic": [{"topic": topic, "count": count} for topic, count in by_topic],
        }
