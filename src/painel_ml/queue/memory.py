"""
In-memory queue used for local development and tests.
"""

import threading
from typing import List

from painel_ml.queue.base import QueueMessage, QueueService
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)


class InMemoryQueueService(QueueService):
    """
    Process-local FIFO list.

    Messages are removed on receive, so delete only logs. Nothing is
    redelivered and nothing survives a restart.
    """

    def __init__(self):
        self._messages: List[QueueMessage] = []
        self._counter = 0
        self._lock = threading.Lock()
        logger.warning("Using in-memory queue - messages are lost on restart")

    def send_message(self, message: QueueMessage) -> str:
        with self._lock:
            self._counter += 1
            message_id = f"mock-{self._counter}"
            self._messages.append(QueueMessage(
                id=message.id,
                type=message.type,
                payload=dict(message.payload),
                receipt_handle=f"receipt-{message_id}",
            ))
        logger.debug(f"[memory] queued {message.type} {message.id} as {message_id}")
        return message_id

    def receive_messages(self, max_messages: int = 10) -> List[QueueMessage]:
        with self._lock:
            batch = self._messages[:max_messages]
            del self._messages[:max_messages]
        if batch:
            logger.debug(f"[memory] received {len(batch)} message(s)")
        return batch

    def delete_message(self, receipt_handle: str) -> None:
        logger.debug(f"[memory] delete {receipt_handle}")

    def size(self) -> int:
        return len(self._messages)
