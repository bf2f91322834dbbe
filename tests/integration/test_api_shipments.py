"""
Integration tests for shipments and pending shipment SLA views
"""
from datetime import datetime, timedelta

from fastapi import status


class TestShipmentEndpoints:
    def test_list_requires_account(self, client):
        assert client.get("/shipments").status_code == status.HTTP_400_BAD_REQUEST

    def test_list_and_stats(self, client, account, make_shipment):
        make_shipment("40001")
        make_shipment("40002", status="shipped")
        make_shipment("40003", status="delivered")

        listing = client.get("/shipments", params={"accountId": str(account.id)}).json()
        stats = client.get("/shipments/stats", params={"accountId": str(account.id)}).json()

        assert len(listing) == 3
        assert stats == {"total": 3, "pending": 1, "shipped": 1, "delivered": 1}

    def test_get_by_id(self, client, make_shipment):
        shipment = make_shipment("40004", tracking_number="BR123")

        data = client.get(f"/shipments/{shipment.id}").json()

        assert data["meliShipmentId"] == "40004"
        assert data["trackingNumber"] == "BR123"


class TestPendingShipments:
    def test_sorted_by_deadline_with_urgency(self, client, account, make_shipment, make_order):
        now = datetime.utcnow()
        make_order("2000001")
        make_shipment("1", sla_expected_date=now + timedelta(hours=30))
        make_shipment("2", sla_expected_date=now + timedelta(hours=3), order_id="2000001")
        make_shipment("3", sla_expected_date=now - timedelta(hours=2))
        make_shipment("4")
        make_shipment("5", status="delivered", sla_expected_date=now)

        items = client.get("/pending-shipments", params={"accountId": str(account.id)}).json()["items"]

        assert [i["meliShipmentId"] for i in items] == ["3", "2", "1", "4"]
        assert [i["urgency"] for i in items] == ["overdue", "critical", "normal", "normal"]
        assert items[3]["timeRemaining"] == "Sem prazo"
        assert items[1]["order"]["meliOrderId"] == "2000001"
        assert items[0]["order"] is None

    def test_stats(self, client, account, make_shipment):
        now = datetime.utcnow()
        make_shipment("1", sla_status="on_time", sla_expected_date=now + timedelta(hours=10))
        make_shipment("2", sla_status="delayed", sla_expected_date=now - timedelta(hours=1))
        make_shipment("3", status="handling", sla_expected_date=now + timedelta(hours=48))

        data = client.get("/pending-shipments/stats").json()

        assert data == {"total": 3, "onTime": 1, "delayed": 1, "urgent": 1}

    def test_populate_test_sla(self, client, account, make_shipment):
        for index in range(7):
            make_shipment(str(index))

        data = client.post("/test-sla/populate", params={"accountId": str(account.id)}).json()

        assert data == {"message": "Test SLA data populated successfully", "updatedCount": 5}
        items = client.get("/pending-shipments").json()["items"]
        assert sum(1 for i in items if i["slaExpectedDate"]) == 5
        assert all(i["slaLastUpdated"] is None for i in items)

    def test_populate_without_shipments(self, client, account):
        data = client.post("/test-sla/populate", params={"accountId": str(account.id)}).json()
        assert data == {"message": "No pending shipments found"}
