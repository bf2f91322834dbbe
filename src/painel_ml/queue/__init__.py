"""
Webhook dispatch queue.

get_queue() returns the process-wide backend selected by QUEUE_BACKEND:
``memory`` (default) or ``broker``.
"""

from typing import Optional

from painel_ml.queue.base import (
    QueueMessage,
    QueueService,
    WEBHOOK,
    SYNC_ITEM,
    SYNC_ORDER,
    SYNC_SHIPMENT,
    SYNC_QUESTION,
)
from painel_ml.utils.config import get_config

_queue: Optional[QueueService] = None


def get_queue() -> QueueService:
    global _queue
    if _queue is None:
        queue_config = get_config().queue
        if queue_config.backend == "broker":
            from painel_ml.queue.broker import BrokerQueueService
            _queue = BrokerQueueService(queue_config)
        else:
            from painel_ml.queue.memory import InMemoryQueueService
            _queue = InMemoryQueueService()
    return _queue


def reset_queue() -> None:
    global _queue
    _queue = None


__all__ = [
    "QueueMessage",
    "QueueService",
    "WEBHOOK",
    "SYNC_ITEM",
    "SYNC_ORDER",
    "SYNC_SHIPMENT",
    "SYNC_QUESTION",
    "get_queue",
    "reset_queue",
]
