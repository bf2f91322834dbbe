"""
Unit tests for webhook intake and the queue consumer
"""
from unittest.mock import MagicMock

import pytest

from painel_ml.database.models import WebhookEvent
from painel_ml.queue import QueueMessage, SYNC_ORDER, WEBHOOK
from painel_ml.queue.memory import InMemoryQueueService
from painel_ml.services.webhooks import WebhooksService, normalize_topic
from painel_ml.utils.exceptions import ValidationError
from painel_ml.workers.webhook_worker import WebhookWorker, extract_resource_id


@pytest.fixture
def memory_queue():
    return InMemoryQueueService()


@pytest.fixture
def worker(db_session, memory_queue):
    worker = WebhookWorker(db_session, memory_queue)
    worker.items = MagicMock()
    worker.orders = MagicMock()
    worker.shipments = MagicMock()
    worker.questions = MagicMock()
    return worker


def _notification(event_id="evt-1", topic="orders_v2", resource="/orders/2000001", user_id=123456789):
    return {"_id": event_id, "topic": topic, "resource": resource, "user_id": user_id, "application_id": 1}


class TestWebhooksService:
    def test_stores_and_enqueues(self, db_session, memory_queue):
        service = WebhooksService(db_session, memory_queue)

        assert service.process_webhook(_notification()) is True

        event = db_session.query(WebhookEvent).one()
        assert event.event_id == "evt-1"
        assert event.user_id == "123456789"
        assert event.processed is False

        message = memory_queue.receive_messages()[0]
        assert message.type == WEBHOOK
        assert message.payload == {
            "eventId": "evt-1",
            "topic": "orders",
            "resource": "/orders/2000001",
            "userId": "123456789",
        }

    def test_duplicate_is_ignored(self, db_session, memory_queue):
        service = WebhooksService(db_session, memory_queue)
        service.process_webhook(_notification())

        assert service.process_webhook(_notification()) is False
        assert db_session.query(WebhookEvent).count() == 1
        assert memory_queue.size() == 1

    def test_enqueue_failure_keeps_event(self, db_session):
        queue = MagicMock()
        queue.enqueue_webhook.side_effect = RuntimeError("broker down")
        service = WebhooksService(db_session, queue)

        assert service.process_webhook(_notification()) is True
        assert service.get_pending_events()[0].event_id == "evt-1"

    def test_missing_fields(self, db_session, memory_queue):
        with pytest.raises(ValidationError):
            WebhooksService(db_session, memory_queue).process_webhook({"topic": "items"})

    def test_stats(self, db_session, memory_queue):
        service = WebhooksService(db_session, memory_queue)
        service.process_webhook(_notification("a", "items", "/items/MLB1"))
        service.process_webhook(_notification("b", "items", "/items/MLB2"))
        service.process_webhook(_notification("c", "questions", "/questions/9"))
        service.mark_processed("a")

        stats = service.get_stats()

        assert stats["total"] == 3
        assert stats["processed"] == 1
        assert stats["pending"] == 2
        assert stats["byTopic"] == [{"topic": "items", "count": 2}, {"topic": "questions", "count": 1}]

    def test_normalize_topic(self):
        assert normalize_topic("orders_v2") == "orders"
        assert normalize_topic("items") == "items"


class TestWebhookWorker:
    def test_extract_resource_id(self):
        assert extract_resource_id("/orders/2000001") == "2000001"
        assert extract_resource_id("/items/MLB123") == "MLB123"
        assert extract_resource_id("") is None
        assert extract_resource_id(None) is None

    def test_dispatches_webhook_and_marks_processed(self, db_session, worker, memory_queue, account):
        WebhooksService(db_session, memory_queue).process_webhook(_notification())

        result = worker.process_queue()

        assert result == {"received": 1, "processed": 1, "failed": 0}
        worker.orders.sync_order.assert_called_once_with(account.id, "2000001")
        event = db_session.query(WebhookEvent).one()
        assert event.processed is True
        assert event.processed_at is not None

    def test_unknown_seller_is_consumed(self, db_session, worker, memory_queue):
        memory_queue.enqueue_webhook("evt-9", "items", "/items/MLB1", "555")

        result = worker.process_queue()

        assert result["processed"] == 1
        worker.items.sync_item.assert_not_called()

    def test_sync_job_message(self, worker, memory_queue, account):
        memory_queue.enqueue_sync_job(SYNC_ORDER, str(account.id), "2000002")

        worker.process_queue()

        worker.orders.sync_order.assert_called_once_with(account.id, "2000002")

    def test_failed_message_is_not_deleted(self, db_session, account):
        queue = MagicMock()
        queue.receive_messages.return_value = [
            QueueMessage(id="evt-1", type=WEBHOOK, receipt_handle="rh-1",
                         payload={"eventId": "evt-1", "topic": "items",
                                  "resource": "/items/MLB1", "userId": account.seller_id}),
            QueueMessage(id="evt-2", type=WEBHOOK, receipt_handle="rh-2",
                         payload={"eventId": "evt-2", "topic": "items",
                                  "resource": "/items/MLB2", "userId": account.seller_id}),
        ]
        worker = WebhookWorker(db_session, queue)
        worker.items = MagicMock()
        worker.items.sync_item.side_effect = [RuntimeError("api down"), None]

        result = worker.process_queue()

        assert result == {"received": 2, "processed": 1, "failed": 1}
        queue.delete_message.assert_called_once_with("rh-2")

    def test_concurrent_run_is_skipped(self, worker):
        assert WebhookWorker._lock.acquire(blocking=False)
        try:
            result = worker.process_queue()
        finally:
            WebhookWorker._lock.release()

        assert result["skipped"] is True

    def test_requeue_pending(self, db_session, worker, memory_queue):
        failing = MagicMock()
        failing.enqueue_webhook.side_effect = RuntimeError("down")
        WebhooksService(db_session, failing).process_webhook(_notification())

        result = worker.requeue_pending_webhooks()

        assert result == {"pending": 1, "enqueued": 1, "failed": 0}
        event = db_session.query(WebhookEvent).one()
        assert event.attempts == 2
        assert memory_queue.receive_messages()[0].payload["topic"] == "orders"
