"""
Integration tests for OAuth, accounts, webhooks and manual sync endpoints
"""
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlparse

from fastapi import status

from painel_ml.api.main import app
from painel_ml.api.routes.oauth import get_oauth
from painel_ml.database.models import Account, AccountToken, Order, SyncLog, WebhookEvent
from painel_ml.marketplaces.oauth import STATE_NAMESPACE, MeliOAuth
from painel_ml.queue import get_queue


def _notification(event_id="evt-1", topic="items", resource="/items/MLB1"):
    return {"_id": event_id, "topic": topic, "resource": resource, "user_id": 123456789, "attempts": 1}


class TestOAuthEndpoints:
    def test_start_redirects_to_authorization(self, client, fake_cache):
        app.dependency_overrides[get_oauth] = lambda: MeliOAuth(cache=fake_cache)

        response = client.get("/meli/oauth/start", follow_redirects=False)

        assert response.status_code == status.HTTP_307_TEMPORARY_REDIRECT
        query = parse_qs(urlparse(response.headers["location"]).query)
        assert query["code_challenge_method"] == ["S256"]
        assert (STATE_NAMESPACE, query["state"][0]) in fake_cache.store

    def test_callback_with_unknown_state(self, client, fake_cache):
        app.dependency_overrides[get_oauth] = lambda: MeliOAuth(cache=fake_cache)

        response = client.get("/meli/oauth/callback", params={"code": "c", "state": "nope"},
                              follow_redirects=False)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["message"] == "invalid_state"

    def test_callback_redirects_to_frontend(self, client):
        oauth = MagicMock()
        oauth.handle_callback.return_value = {"account_id": "x", "seller_id": "1"}
        app.dependency_overrides[get_oauth] = lambda: oauth

        response = client.get("/meli/oauth/callback", params={"code": "c", "state": "s"},
                              follow_redirects=False)

        assert response.status_code == status.HTTP_307_TEMPORARY_REDIRECT
        assert response.headers["location"].endswith("/connected")


class TestAccountEndpoints:
    def test_list_accounts(self, client, account):
        items = client.get("/accounts").json()["items"]

        assert [a["sellerId"] for a in items] == ["123456789"]
        assert "accessToken" not in items[0]

    def test_status(self, client, account, other_account):
        connected = client.get("/accounts/123456789/status").json()
        missing = client.get("/accounts/987654321/status").json()

        assert connected == {"hasTokens": True, "expiringSoon": False,
                             "tokenType": "Bearer", "scope": "offline_access read write"}
        assert missing["hasTokens"] is False
        assert missing["expiringSoon"] is True

    def test_delete_cascades(self, client, db_session, account, make_order):
        make_order("2000001")
        account_id = account.id

        response = client.delete(f"/accounts/{account_id}")

        assert response.json() == {"success": True, "message": "Account deleted"}
        db_session.expire_all()
        assert db_session.query(Account).count() == 0
        assert db_session.query(AccountToken).count() == 0
        assert db_session.query(Order).count() == 0

    def test_delete_unknown(self, client):
        response = client.delete("/accounts/00000000-0000-0000-0000-000000000000")
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestWebhookEndpoints:
    def test_receive_and_dedupe(self, client, db_session):
        first = client.post("/meli/webhooks", json=_notification(), headers={"x-correlation-id": "corr-1"})
        second = client.post("/meli/webhooks", json=_notification())

        assert first.status_code == status.HTTP_200_OK
        assert first.json() == {"status": "ok", "topic": "items", "resource": "/items/MLB1",
                                "correlation_id": "corr-1"}
        assert first.headers["x-correlation-id"] == "corr-1"
        assert second.json()["status"] == "duplicate"
        assert db_session.query(WebhookEvent).count() == 1
        assert get_queue().size() == 1

    def test_invalid_payload_still_answers_200(self, client):
        response = client.post("/meli/webhooks", json={"topic": "items"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "error"

    def test_stats_and_pending(self, client):
        client.post("/meli/webhooks", json=_notification("a"))
        client.post("/meli/webhooks", json=_notification("b", "orders_v2", "/orders/1"))

        stats = client.get("/meli/webhooks/stats").json()
        pending = client.get("/meli/webhooks/pending").json()

        assert stats["total"] == 2
        assert stats["pending"] == 2
        assert [p["eventId"] for p in pending] == ["a", "b"]


class TestSyncEndpoints:
    @patch("painel_ml.api.routes.sync.sync_account")
    def test_start_dispatches_once(self, mock_task, client, db_session, account):
        url = f"/sync/{account.id}/start"

        first = client.post(url, params={"scope": "orders", "days": "500"})
        second = client.post(url)

        assert first.json() == {"status": "started", "accountId": str(account.id), "scope": "orders", "days": 90}
        assert second.json()["status"] == "started"
        sync_log = db_session.query(SyncLog).one()
        mock_task.delay.assert_called_once_with(str(sync_log.id))

        status_data = client.get(f"/sync/{account.id}/status").json()
        assert status_data["running"] is True

    @patch("painel_ml.api.routes.sync.sync_account")
    def test_infinite_days_falls_back_to_default(self, mock_task, client, account):
        response = client.post(f"/sync/{account.id}/start", params={"days": "inf"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["days"] == 30

    def test_invalid_scope(self, client, account):
        response = client.post(f"/sync/{account.id}/start", params={"scope": "everything"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @patch("painel_ml.api.routes.sync.sync_account")
    def test_dispatch_failure(self, mock_task, client, account):
        mock_task.delay.side_effect = RuntimeError("broker down")

        response = client.post(f"/sync/{account.id}/start")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        status_data = client.get(f"/sync/{account.id}/status").json()
        assert status_data["running"] is False
        assert status_data["errors"] == ["dispatch failed: broker down"]

    def test_idle_status(self, client, account):
        data = client.get(f"/sync/{account.id}/status").json()
        assert data == {"running": False, "startedAt": None, "finishedAt": None,
                        "itemsProcessed": 0, "ordersProcessed": 0, "errors": []}
