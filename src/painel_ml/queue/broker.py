"""
Broker-backed queue using kombu.

Works with any kombu transport; in production QUEUE_BROKER_URL points at
SQS (``sqs://``) so unacknowledged messages reappear after the visibility
timeout. Queue retention is configured when the queue is provisioned.
"""

import queue as stdlib_queue
import threading
import time
import uuid
from typing import Dict, List, Optional, Tuple

from kombu import Connection

from painel_ml.queue.base import QueueMessage, QueueService
from painel_ml.utils.config import QueueConfig
from painel_ml.utils.exceptions import QueueError
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)


class BrokerQueueService(QueueService):
    """Queue on a kombu SimpleQueue with explicit acknowledgement."""

    def __init__(self, config: QueueConfig, connection: Optional[Connection] = None):
        if not config.broker_url and connection is None:
            raise QueueError("QUEUE_BROKER_URL is required for the broker queue backend", operation="connect")

        self.config = config
        self.connection = connection or Connection(
            config.broker_url,
            transport_options={
                "region": config.region,
                "visibility_timeout": config.visibility_timeout,
                "wait_time_seconds": config.wait_time_seconds,
            },
        )
        self._queue = self.connection.SimpleQueue(config.name)
        # receipt handle -> (kombu message, monotonic receive time)
        self._pending: Dict[str, Tuple[object, float]] = {}
        self._lock = threading.Lock()
        logger.info(f"Broker queue ready: {config.name}")

    def send_message(self, message: QueueMessage) -> str:
        message_id = str(uuid.uuid4())
        try:
            self._queue.put(
                {"id": message.id, "type": message.type, "payload": message.payload},
                headers={"type": message.type, "message_id": message_id},
                serializer="json",
            )
        except Exception as e:
            logger.error(f"Broker send failed for {message.id}: {e}")
            raise QueueError(f"Failed to send message {message.id}: {e}", operation="send") from e
        return message_id

    def receive_messages(self, max_messages: int = 10) -> List[QueueMessage]:
        self._expire_pending()

        received: List[QueueMessage] = []
        pulled = 0
        try:
            while pulled < max_messages:
                try:
                    if pulled == 0:
                        raw = self._queue.get(block=True, timeout=self.config.wait_time_seconds)
                    else:
                        raw = self._queue.get_nowait()
                except stdlib_queue.Empty:
                    break
                pulled += 1

                message = self._track(raw)
                if message is not None:
                    received.append(message)
        except Exception as e:
            logger.error(f"Broker receive failed: {e}")
            if received:
                # Tracked messages must reach the caller so they can be acked
                return received
            raise QueueError(f"Failed to receive messages: {e}", operation="receive") from e

        logger.debug(f"[broker] received {len(received)} message(s)")
        return received

    def _track(self, raw) -> Optional[QueueMessage]:
        try:
            message = QueueMessage.from_body(raw.payload, receipt_handle=str(raw.delivery_tag))
        except (KeyError, ValueError, TypeError) as e:
            # Unparseable bodies would loop forever; reject them instead
            logger.error(f"Rejecting malformed queue message {raw.delivery_tag}: {e}")
            try:
                raw.reject()
            except Exception as reject_error:
                logger.error(f"Broker reject failed for {raw.delivery_tag}: {reject_error}")
            return None

        with self._lock:
            self._pending[message.receipt_handle] = (raw, time.monotonic())
        return message

    def _expire_pending(self) -> None:
        """Forget handles never acked within the visibility timeout; the broker redelivers them with new tags."""
        cutoff = time.monotonic() - self.config.visibility_timeout
        with self._lock:
            stale = [handle for handle, (_, received_at) in self._pending.items() if received_at < cutoff]
            for handle in stale:
                del self._pending[handle]
        if stale:
            logger.debug(f"[broker] dropped {len(stale)} expired receipt handle(s)")

    def delete_message(self, receipt_handle: str) -> None:
        with self._lock:
            entry = self._pending.pop(receipt_handle, None)
        if entry is None:
            logger.warning(f"Unknown receipt handle {receipt_handle}; message may already be acknowledged")
            return
        raw, _ = entry
        try:
            raw.ack()
        except Exception as e:
            logger.error(f"Broker ack failed for {receipt_handle}: {e}")
            raise QueueError(f"Failed to delete message: {e}", operation="delete") from e

    def size(self) -> int:
        try:
            return self._queue.qsize()
        except Exception as e:
            logger.error(f"Broker size failed: {e}")
            raise QueueError(f"Failed to read queue size: {e}", operation="size") from e

    def close(self) -> None:
        self._queue.close()
        self.connection.release()
