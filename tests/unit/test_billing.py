"""
Unit tests for billing sync and financial reports
"""
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from painel_ml.database.models import BillingCharge, BillingPeriod
from painel_ml.services.billing import (
    ORDERS_FALLBACK_NOTE,
    BillingService,
    is_tax_label,
    split_charges,
)
from painel_ml.services.ledger import expenses_service
from painel_ml.utils.exceptions import NotFoundError


SUMMARY = {
    "summary": {
        "charges": [
            {"label": "Tarifa de venda", "amount": 100.0},
            {"label": "Imposto ICMS", "amount": 30.0},
            {"label": "Custo de envio", "amount": 20.0},
        ],
        "bonuses": [{"label": "Bônus de frete", "amount": 5.0}],
    }
}

PERIOD = {
    "key": "2026-01-01",
    "amount": 1000.0,
    "unpaid_amount": 0,
    "period_status": "CLOSED",
    "expiration_date": "2026-02-10T00:00:00.000-03:00",
    "period": {"date_from": "2026-01-01T00:00:00", "date_to": "2026-01-31T00:00:00"},
}


@pytest.fixture
def billing_client(account):
    client = MagicMock()
    client.account_id = account.id
    client.get_billing_periods.return_value = {"results": [PERIOD]}
    client.get_billing_summary.return_value = SUMMARY
    return client


class TestChargeClassification:
    @pytest.mark.parametrize("label", ["Imposto ICMS", "Percepção IIBB", "IVA", "percepcao"])
    def test_tax_labels(self, label):
        assert is_tax_label(label) is True

    @pytest.mark.parametrize("label", ["Tarifa de venda", "Custo de envio", "", None])
    def test_fee_labels(self, label):
        assert is_tax_label(label) is False

    def test_split_charges(self):
        assert split_charges(SUMMARY) == (120.0, 30.0)
        assert split_charges(None) == (0.0, 0.0)


class TestBillingSync:
    def test_sync_stores_period_and_charges(self, db_session, account, billing_client):
        service = BillingService(db_session, billing_client)

        result = service.sync_billing_periods(account.id)

        assert result == {"synced": 1, "errors": 0, "total": 1}
        period = db_session.query(BillingPeriod).one()
        assert period.fees_amount == 120.0
        assert period.tax_amount == 30.0
        assert period.net_amount == 850.0
        assert period.date_from == datetime(2026, 1, 1)

        charges = {c.description: c for c in db_session.query(BillingCharge).all()}
        assert charges["Imposto ICMS"].charge_type == "TAX"
        assert charges["Tarifa de venda"].charge_type == "FEE_ML"
        assert charges["Bônus de frete"].charge_type == "BONUS"
        assert charges["Bônus de frete"].amount == -5.0

    def test_resync_replaces_charges(self, db_session, account, billing_client):
        service = BillingService(db_session, billing_client)
        service.sync_billing_periods(account.id)
        service.sync_billing_periods(account.id)

        assert db_session.query(BillingPeriod).count() == 1
        assert db_session.query(BillingCharge).count() == 4

    def test_missing_summary_still_saves_period(self, db_session, account, billing_client):
        billing_client.get_billing_summary.side_effect = RuntimeError("not available")

        BillingService(db_session, billing_client).sync_billing_periods(account.id)

        period = db_session.query(BillingPeriod).one()
        assert period.net_amount == 1000.0
        assert db_session.query(BillingCharge).count() == 0

    def test_period_listing_and_details(self, db_session, account, billing_client):
        service = BillingService(db_session, billing_client)
        service.sync_billing_periods(account.id)

        listing = service.get_billing_periods(account.id)
        assert listing["total"] == 1
        assert listing["periods"][0]["chargesCount"] == 4

        details = service.get_billing_period_details(listing["periods"][0]["period"].id)
        assert details["charges"][0].amount == 100.0
        assert set(details["chargesByType"]) == {"FEE_ML", "TAX", "BONUS"}

    def test_unknown_period(self, db_session, account):
        import uuid

        with pytest.raises(NotFoundError):
            BillingService(db_session, MagicMock()).get_billing_period_details(uuid.uuid4())


class TestFinancialReports:
    def test_stats_from_billing_periods(self, db_session, account, billing_client):
        service = BillingService(db_session, billing_client)
        service.sync_billing_periods(account.id)

        stats = service.get_financial_stats(account.id)

        assert stats["totalRevenue"] == 1000.0
        assert stats["totalNet"] == 850.0
        assert stats["profitMargin"] == pytest.approx(85.0)
        assert stats["periodsCount"] == 1
        assert "note" not in stats

    def test_stats_fall_back_to_orders(self, db_session, account, make_order):
        created = datetime.utcnow().replace(day=1, hour=12)
        make_order("2000001", total_amount=100.0, date_created=created)
        make_order("2000002", total_amount=300.0, date_created=created)

        stats = BillingService(db_session, MagicMock()).get_financial_stats(account.id)

        assert stats["totalRevenue"] == 400.0
        assert stats["totalFees"] == pytest.approx(56.0)
        assert stats["totalTaxes"] == pytest.approx(28.0)
        assert stats["totalNet"] == pytest.approx(316.0)
        assert stats["periodsCount"] == 1
        assert stats["periods"][0]["orderCount"] == 2
        assert stats["note"] == ORDERS_FALLBACK_NOTE

    def test_no_data(self, db_session, account):
        stats = BillingService(db_session, MagicMock()).get_financial_stats(account.id)

        assert stats["totalRevenue"] == 0
        assert stats["profitMargin"] == 0
        assert stats["periods"] == []

    def test_product_profitability(self, db_session, account, make_order):
        make_order("1", item_id="MLB1", item_title="Caneca", total_amount=100.0)
        make_order("2", item_id="MLB1", item_title="Caneca", total_amount=50.0)
        make_order("3", item_id="MLB2", item_title="Camiseta", total_amount=500.0)

        result = BillingService(db_session, MagicMock()).get_product_profitability(account.id)

        assert result["totalProducts"] == 2
        top = result["products"][0]
        assert top["itemId"] == "MLB2"
        assert top["netRevenue"] == pytest.approx(395.0)
        caneca = result["products"][1]
        assert caneca["orderCount"] == 2
        assert caneca["avgOrderValue"] == 75.0

    def test_cost_breakdown_subtracts_expenses(self, db_session, account, make_order):
        make_order("1", total_amount=1000.0)
        expenses_service(db_session).create(account.id, {"name": "Aluguel", "category": "fixed", "amount": 200.0})

        result = BillingService(db_session, MagicMock()).get_cost_breakdown(account.id)

        assert result["total"] == 1000.0
        assert result["totalExpenses"] == 200.0
        assert result["realProfit"] == pytest.approx(590.0)
        names = [entry["name"] for entry in result["breakdown"]]
        assert names == ["Lucro Real", "Despesas Fixas", "Taxas ML/MP", "Impostos"]
