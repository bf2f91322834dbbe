"""
Unit tests for the webhook queue backends
"""
import uuid
from unittest.mock import MagicMock

import pytest
from kombu import Connection

from painel_ml.queue import get_queue, reset_queue
from painel_ml.queue.base import QueueMessage, SYNC_ORDER, WEBHOOK
from painel_ml.queue.broker import BrokerQueueService
from painel_ml.queue.memory import InMemoryQueueService
from painel_ml.utils.config import QueueConfig
from painel_ml.utils.exceptions import QueueError, ValidationError


class TestQueueMessage:
    def test_body_uses_camel_case_payload(self):
        message = QueueMessage(id="evt-1", type=WEBHOOK,
                               payload={"eventId": "evt-1", "topic": "items"})

        restored = QueueMessage.from_body(message.to_body(), receipt_handle="r-1")

        assert restored.id == "evt-1"
        assert restored.type == WEBHOOK
        assert restored.payload == {"eventId": "evt-1", "topic": "items"}
        assert restored.receipt_handle == "r-1"


class TestInMemoryQueue:
    """Test the process-local queue"""

    def test_send_assigns_monotonic_ids(self):
        queue = InMemoryQueueService()

        first = queue.send_message(QueueMessage(id="a", type=WEBHOOK))
        second = queue.send_message(QueueMessage(id="b", type=WEBHOOK))

        assert first == "mock-1"
        assert second == "mock-2"
        assert queue.size() == 2

    def test_receive_takes_from_front(self):
        queue = InMemoryQueueService()
        for i in range(3):
            queue.send_message(QueueMessage(id=f"m{i}", type=WEBHOOK))

        batch = queue.receive_messages(2)

        assert [m.id for m in batch] == ["m0", "m1"]
        assert [m.receipt_handle for m in batch] == ["receipt-mock-1", "receipt-mock-2"]
        assert queue.size() == 1

    def test_delete_is_noop(self):
        queue = InMemoryQueueService()
        queue.send_message(QueueMessage(id="a", type=WEBHOOK))
        queue.delete_message("receipt-mock-1")
        assert queue.size() == 1

    def test_enqueue_webhook_payload(self):
        queue = InMemoryQueueService()

        queue.enqueue_webhook("evt-9", "orders", "/orders/2000001", 123456789)
        message = queue.receive_messages()[0]

        assert message.id == "evt-9"
        assert message.type == WEBHOOK
        assert message.payload == {
            "eventId": "evt-9",
            "topic": "orders",
            "resource": "/orders/2000001",
            "userId": "123456789",
        }

    def test_enqueue_sync_job(self):
        queue = InMemoryQueueService()

        queue.enqueue_sync_job(SYNC_ORDER, "acc-1", "2000001")
        message = queue.receive_messages()[0]

        assert message.id == "sync_order-2000001"
        assert message.payload == {"accountId": "acc-1", "resourceId": "2000001"}

    def test_enqueue_sync_job_rejects_unknown_type(self):
        queue = InMemoryQueueService()
        with pytest.raises(ValidationError):
            queue.enqueue_sync_job("sync_invoice", "acc-1", "1")

    def test_send_failure_is_logged_and_reraised(self):
        queue = InMemoryQueueService()
        queue.send_message = MagicMock(side_effect=RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            queue.enqueue_webhook("evt-1", "items", "/items/MLB1", "1")


class TestBrokerQueue:
    """Test the kombu backend on the in-process memory transport"""

    @pytest.fixture
    def broker_queue(self):
        config = QueueConfig(backend="broker", broker_url="memory://", name=f"painel-test-{uuid.uuid4().hex[:8]}",
                             wait_time_seconds=1)
        queue = BrokerQueueService(config, connection=Connection("memory://"))
        yield queue
        queue.close()

    def test_send_receive_delete(self, broker_queue):
        broker_queue.enqueue_webhook("evt-1", "items", "/items/MLB1", "42")
        broker_queue.enqueue_webhook("evt-2", "items", "/items/MLB2", "42")

        batch = broker_queue.receive_messages(10)

        assert [m.id for m in batch] == ["evt-1", "evt-2"]
        assert all(m.receipt_handle for m in batch)
        for message in batch:
            broker_queue.delete_message(message.receipt_handle)

    def test_malformed_body_does_not_drop_batch(self, broker_queue):
        broker_queue.enqueue_webhook("evt-good-1", "items", "/items/MLB1", "42")
        broker_queue._queue.put({"garbage": True}, serializer="json")
        broker_queue.enqueue_webhook("evt-good-2", "items", "/items/MLB2", "42")

        batch = broker_queue.receive_messages(10)

        assert [m.id for m in batch] == ["evt-good-1", "evt-good-2"]
        assert set(broker_queue._pending) == {m.receipt_handle for m in batch}

    def test_unacked_message_is_redelivered(self, broker_queue):
        broker_queue.enqueue_webhook("evt-1", "items", "/items/MLB1", "42")
        first = broker_queue.receive_messages(10)
        assert [m.id for m in first] == ["evt-1"]

        broker_queue._queue.consumer.recover(requeue=True)
        again = broker_queue.receive_messages(10)

        assert [m.id for m in again] == ["evt-1"]
        assert again[0].receipt_handle != first[0].receipt_handle
        broker_queue.delete_message(again[0].receipt_handle)

    def test_acked_message_is_not_redelivered(self, broker_queue):
        broker_queue.enqueue_webhook("evt-1", "items", "/items/MLB1", "42")
        message = broker_queue.receive_messages(10)[0]
        broker_queue.delete_message(message.receipt_handle)

        broker_queue._queue.consumer.recover(requeue=True)

        assert broker_queue.receive_messages(10) == []
        assert broker_queue._pending == {}

    def test_expired_receipt_handles_are_dropped(self, broker_queue):
        for i in range(3):
            broker_queue.enqueue_webhook(f"evt-{i}", "items", f"/items/MLB{i}", "42")
        batch = broker_queue.receive_messages(10)
        assert len(broker_queue._pending) == 3

        # Backdate past the visibility timeout
        for handle, (raw, received_at) in list(broker_queue._pending.items()):
            broker_queue._pending[handle] = (raw, received_at - broker_queue.config.visibility_timeout - 1)
        broker_queue.receive_messages(10)

        assert broker_queue._pending == {}
        broker_queue.delete_message(batch[0].receipt_handle)

    def test_unknown_receipt_handle_is_ignored(self, broker_queue):
        broker_queue.delete_message("does-not-exist")

    def test_send_failure_becomes_queue_error(self, broker_queue):
        broker_queue._queue = MagicMock()
        broker_queue._queue.put.side_effect = ConnectionError("broker down")

        with pytest.raises(QueueError) as exc_info:
            broker_queue.send_message(QueueMessage(id="evt-1", type=WEBHOOK))

        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_requires_broker_url(self):
        with pytest.raises(QueueError):
            BrokerQueueService(QueueConfig(backend="broker", broker_url=None))


def test_get_queue_is_process_wide():
    reset_queue()
    first = get_queue()
    assert isinstance(first, InMemoryQueueService)
    assert get_queue() is first
