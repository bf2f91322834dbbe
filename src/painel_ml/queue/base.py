"""
Queue abstraction for webhook dispatch.

Backends implement send/receive/delete/size. The helpers on QueueService
build the two message kinds the worker understands (webhooks and sync jobs),
log any backend failure and re-raise it.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from painel_ml.utils.exceptions import ValidationError
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)


WEBHOOK = "webhook"
SYNC_ITEM = "sync_item"
SYNC_ORDER = "sync_order"
SYNC_SHIPMENT = "sync_shipment"
SYNC_QUESTION = "sync_question"

SYNC_JOB_TYPES = (SYNC_ITEM, SYNC_ORDER, SYNC_SHIPMENT, SYNC_QUESTION)
MESSAGE_TYPES = (WEBHOOK,) + SYNC_JOB_TYPES


@dataclass
class QueueMessage:
    """A unit of work travelling through the queue."""

    id: str
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)
    receipt_handle: Optional[str] = None

    def to_body(self) -> str:
        return json.dumps({"id": self.id, "type": self.type, "payload": self.payload})

    @classmethod
    def from_body(cls, body, receipt_handle: Optional[str] = None) -> "QueueMessage":
        data = json.loads(body) if isinstance(body, (str, bytes)) else dict(body)
        return cls(
            id=data["id"],
            type=data["type"],
            payload=data.get("payload") or {},
            receipt_handle=receipt_handle,
        )


def webhook_payload(event_id: str, topic: str, resource: str, user_id: str) -> Dict[str, Any]:
    return {"eventId": event_id, "topic": topic, "resource": resource, "userId": str(user_id)}


class QueueService(ABC):
    """Common interface of the in-memory and broker-backed queues."""

    @abstractmethod
    def send_message(self, message: QueueMessage) -> str:
        """Publish a message and return its message id."""

    @abstractmethod
    def receive_messages(self, max_messages: int = 10) -> List[QueueMessage]:
        """Receive up to max_messages, each carrying a receipt handle."""

    @abstractmethod
    def delete_message(self, receipt_handle: str) -> None:
        """Acknowledge a received message so it is not redelivered."""

    @abstractmethod
    def size(self) -> int:
        """Approximate number of waiting messages."""

    def enqueue_webhook(self, event_id: str, topic: str, resource: str, user_id) -> str:
        message = QueueMessage(
            id=event_id,
            type=WEBHOOK,
            payload=webhook_payload(event_id, topic, resource, user_id),
        )
        try:
            message_id = self.send_message(message)
        except Exception as e:
            logger.error(f"Failed to enqueue webhook {event_id} ({topic}): {e}")
            raise
        logger.info(f"Webhook enqueued: {event_id} topic={topic}")
        return message_id

    def enqueue_sync_job(self, job_type: str, account_id, resource_id: str) -> str:
        if job_type not in SYNC_JOB_TYPES:
            raise ValidationError(
                f"Unknown sync job type: {job_type}",
                field="type",
                value=job_type,
                expected_type="|".join(SYNC_JOB_TYPES),
            )

        message = QueueMessage(
            id=f"{job_type}-{resource_id}",
            type=job_type,
            payload={"accountId": str(account_id), "resourceId": str(resource_id)},
        )
        try:
            message_id = self.send_message(message)
        except Exception as e:
            logger.error(f"Failed to enqueue {job_type} for {resource_id}: {e}")
            raise
        logger.info(f"Sync job enqueued: {message.id}")
        return message_id
