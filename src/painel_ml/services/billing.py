"""
MercadoLibre billing periods and the financial reports built on them.

Periods come from the monthly billing integration. Each period summary
lists ML charges and bonuses; charges whose label names a tax are
booked as TAX, the rest as FEE_ML. When no billing data has been synced
the reports fall back to estimates computed from stored orders.
"""

from collections import OrderedDict
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from painel_ml.database.models import BillingCharge, BillingPeriod, Order
from painel_ml.marketplaces.mercadolibre_client import MercadoLibreClient, paged_results
from painel_ml.services.ledger import expenses_service
from painel_ml.utils.dates import months_ago, parse_datetime
from painel_ml.utils.exceptions import NotFoundError
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

TAX_KEYWORDS = ("imposto", "percepcao", "percepção", "iva", "iibb")

# Estimates used when only orders are available
ESTIMATED_FEE_RATE = 0.14
ESTIMATED_TAX_RATE = 0.07
ESTIMATED_NET_RATE = 1 - ESTIMATED_FEE_RATE - ESTIMATED_TAX_RATE

ORDERS_FALLBACK_NOTE = (
    "Calculado baseado em pedidos (API de billing indisponível). "
    "Taxas e impostos são estimativas."
)
TOP_PRODUCTS = 10


def is_tax_label(label: Optional[str]) -> bool:
    label = (label or "").lower()
    return any(keyword in label for keyword in TAX_KEYWORDS)


def split_charges(summary: Optional[Dict[str, Any]]):
    """Return (fees, taxes) totals of a period summary."""
    fees = 0.0
    taxes = 0.0
    for charge in ((summary or {}).get("summary") or {}).get("charges") or []:
        amount = charge.get("amount") or 0
        if is_tax_label(charge.get("label")):
            taxes += amount
        else:
            fees += amount
    return fees, taxes


def _margin(net: float, revenue: float) -> float:
    return (net / revenue) * 100 if revenue > 0 else 0


class BillingService:
    def __init__(self, db: Session, client: Optional[MercadoLibreClient] = None):
        self.db = db
        self._client = client

    def client_for(self, account_id: UUID) -> MercadoLibreClient:
        if self._client is None or self._client.account_id != account_id:
            self._client = MercadoLibreClient(self.db, account_id)
        return self._client

    # Sync

    def sync_billing_periods(self, account_id: UUID) -> Dict[str, int]:
        logger.info(f"Syncing billing periods for account {account_id}")
        client = self.client_for(account_id)
        periods = paged_results(client.get_billing_periods())

        synced = 0
        errors = 0
        for period_data in periods:
            try:
                self.save_billing_period(account_id, period_data)
                synced += 1
            except Exception as e:
                self.db.rollback()
                logger.error(f"Error syncing period {period_data.get('key')}: {e}")
                errors += 1

        logger.info(f"Billing sync completed: {synced} synced, {errors} errors")
        return {"synced": synced, "errors": errors, "total": len(periods)}

    def _fetch_summary(self, account_id: UUID, period_key: str) -> Optional[Dict[str, Any]]:
        try:
            return self.client_for(account_id).get_billing_summary(period_key)
        except Exception as e:
            logger.warning(f"Could not fetch summary for period {period_key}: {e}")
            return None

    def save_billing_period(self, account_id: UUID, period_data: Dict[str, Any]) -> BillingPeriod:
        period_key = period_data["key"]
        summary = self._fetch_summary(account_id, period_key)

        total_amount = period_data.get("amount") or 0
        fees_amount, tax_amount = split_charges(summary)
        period_range = period_data.get("period") or {}

        values = {
            "total_amount": total_amount,
            "unpaid_amount": period_data.get("unpaid_amount") or 0,
            "fees_amount": fees_amount,
            "tax_amount": tax_amount,
            "net_amount": total_amount - fees_amount - tax_amount,
            "period_status": period_data.get("period_status") or "CLOSED",
            "raw_data": {"period": period_data, "summary": summary},
        }

        period = (
            self.db.query(BillingPeriod)
            .filter(BillingPeriod.account_id == account_id, BillingPeriod.period_key == period_key)
            .first()
        )
        if period is None:
            period = BillingPeriod(
                account_id=account_id,
                period_key=period_key,
                date_from=parse_datetime(period_range.get("date_from")),
                date_to=parse_datetime(period_range.get("date_to")),
                expiration_date=parse_datetime(period_data.get("expiration_date")),
                **values,
            )
            self.db.add(period)
        else:
            for field, value in values.items():
                setattr(period, field, value)
        self.db.flush()

        if summary and summary.get("summary"):
            self._replace_charges(period, account_id, summary["summary"], period_range)

        self.db.commit()
        return period

    def _replace_charges(self, period: BillingPeriod, account_id: UUID,
                         summary: Dict[str, Any], period_range: Dict[str, Any]) -> None:
        self.db.query(BillingCharge).filter(BillingCharge.period_id == period.id).delete(synchronize_session=False)
        charge_date = parse_datetime(period_range.get("date_to"))

        for charge in summary.get("charges") or []:
            self.db.add(BillingCharge(
                period_id=period.id,
                account_id=account_id,
                charge_type="TAX" if is_tax_label(charge.get("label")) else "FEE_ML",
                category=charge.get("label"),
                description=charge.get("label"),
                amount=charge.get("amount") or 0,
                charge_date=charge_date,
                raw_data=charge,
            ))
        for bonus in summary.get("bonuses") or []:
            self.db.add(BillingCharge(
                period_id=period.id,
                account_id=account_id,
                charge_type="BONUS",
                category=bonus.get("label"),
                description=bonus.get("label"),
                amount=-(bonus.get("amount") or 0),
                charge_date=charge_date,
                raw_data=bonus,
            ))

    # Queries

    def get_billing_periods(self, account_id: UUID, limit: int = 12, offset: int = 0,
                            status: Optional[str] = None) -> Dict[str, Any]:
        query = self.db.query(BillingPeriod).filter(BillingPeriod.account_id == account_id)
        if status:
            query = query.filter(BillingPeriod.period_status == status)

        total = query.count()
        periods = query.order_by(BillingPeriod.date_from.desc()).offset(offset).limit(limit).all()

        counts = {}
        if periods:
            counts = dict(
                self.db.query(BillingCharge.period_id, func.count(BillingCharge.id))
                .filter(BillingCharge.period_id.in_([p.id for p in periods]))
                .group_by(BillingCharge.period_id)
                .all()
            )

        return {
            "periods": [{"period": p, "chargesCount": counts.get(p.id, 0)} for p in periods],
            "total": total,
            "limit": limit,
            "offset": offset,
        }

    def get_billing_period_details(self, period_id: UUID) -> Dict[str, Any]:
        period = self.db.query(BillingPeriod).filter(BillingPeriod.id == period_id).first()
        if period is None:
            raise NotFoundError("Billing period", period_id)

        charges = sorted(period.charges, key=lambda c: c.amount or 0, reverse=True)
        charges_by_type: Dict[str, List[BillingCharge]] = {}
        for charge in charges:
            charges_by_type.setdefault(charge.charge_type, []).append(charge)

        return {"period": period, "charges": charges, "chargesByType": charges_by_type}

    def get_financial_stats(self, account_id: UUID, months: int = 12) -> Dict[str, Any]:
        periods = (
            self.db.query(BillingPeriod)
            .filter(BillingPeriod.account_id == account_id)
            .order_by(BillingPeriod.date_from.desc())
            .limit(months)
            .all()
        )
        if not periods:
            return self._financial_stats_from_orders(account_id, months)

        total_revenue = sum(p.total_amount or 0 for p in periods)
        total_net = sum(p.net_amount or 0 for p in periods)
        return {
            "totalRevenue": total_revenue,
            "totalFees": sum(p.fees_amount or 0 for p in periods),
            "totalTaxes": sum(p.tax_amount or 0 for p in periods),
            "totalNet": total_net,
            "avgRevenue": total_revenue / len(periods),
            "avgNet": total_net / len(periods),
            "profitMargin": _margin(total_net, total_revenue),
            "periodsCount": len(periods),
            "periods": [
                {
                    "periodKey": p.period_key,
                    "totalAmount": p.total_amount,
                    "netAmount": p.net_amount,
                    "dateFrom": p.date_from,
                    "dateTo": p.date_to,
                }
                for p in periods
            ],
        }

    def _orders_since(self, account_id: UUID, months: int):
        return (
            self.db.query(Order)
            .filter(Order.account_id == account_id, Order.date_created >= months_ago(months))
            .order_by(Order.date_created.desc())
        )

    def _financial_stats_from_orders(self, account_id: UUID, months: int) -> Dict[str, Any]:
        orders = self._orders_since(account_id, months).all()

        total_revenue = sum(o.total_amount or 0 for o in orders)
        estimated_fees = total_revenue * ESTIMATED_FEE_RATE
        estimated_taxes = total_revenue * ESTIMATED_TAX_RATE
        total_net = total_revenue - estimated_fees - estimated_taxes

        buckets: Dict[str, Dict[str, Any]] = OrderedDict()
        for order in orders:
            key = order.date_created.strftime("%Y-%m")
            bucket = buckets.setdefault(key, {"total": 0, "count": 0})
            bucket["total"] += order.total_amount or 0
            bucket["count"] += 1

        periods = sorted(
            (
                {
                    "periodKey": key,
                    "totalAmount": bucket["total"],
                    "netAmount": bucket["total"] * ESTIMATED_NET_RATE,
                    "orderCount": bucket["count"],
                }
                for key, bucket in buckets.items()
            ),
            key=lambda p: p["periodKey"],
            reverse=True,
        )
        divisor = max(len(periods), 1)

        return {
            "totalRevenue": total_revenue,
            "totalFees": estimated_fees,
            "totalTaxes": estimated_taxes,
            "totalNet": total_net,
            "avgRevenue": total_revenue / divisor,
            "avgNet": total_net / divisor,
            "profitMargin": _margin(total_net, total_revenue),
            "periodsCount": len(periods),
            "periods": periods,
            "note": ORDERS_FALLBACK_NOTE,
        }

    def get_product_profitability(self, account_id: UUID, months: int = 12) -> Dict[str, Any]:
        orders = self._orders_since(account_id, months).filter(Order.item_title.isnot(None)).all()

        products: Dict[str, Dict[str, Any]] = {}
        for order in orders:
            if not order.item_id or not order.item_title:
                continue
            product = products.setdefault(order.item_id, {
                "itemId": order.item_id,
                "title": order.item_title,
                "totalRevenue": 0,
                "orderCount": 0,
            })
            product["totalRevenue"] += order.total_amount or 0
            product["orderCount"] += 1

        ranked = []
        for product in products.values():
            revenue = product["totalRevenue"]
            fees = revenue * ESTIMATED_FEE_RATE
            taxes = revenue * ESTIMATED_TAX_RATE
            net_revenue = revenue - fees - taxes
            ranked.append({
                **product,
                "avgOrderValue": revenue / product["orderCount"],
                "fees": fees,
                "taxes": taxes,
                "netRevenue": net_revenue,
                "profitMargin": _margin(net_revenue, revenue),
            })
        ranked.sort(key=lambda p: p["netRevenue"], reverse=True)

        return {"products": ranked, "totalProducts": len(ranked), "topProducts": ranked[:TOP_PRODUCTS]}

    def get_cost_breakdown(self, account_id: UUID, months: int = 12) -> Dict[str, Any]:
        """Revenue split into real profit, fixed expenses, fees and taxes for the dashboard chart."""
        stats = self.get_financial_stats(account_id, months)
        expenses = expenses_service(self.db).get_summary_by_category(account_id)
        total_expenses = sum(entry["total"] for entry in expenses)
        real_profit = stats["totalNet"] - total_expenses

        return {
            "breakdown": [
                {"name": "Lucro Real", "value": real_profit if real_profit > 0 else 0, "color": "#10b981"},
                {"name": "Despesas Fixas", "value": total_expenses, "color": "#8b5cf6"},
                {"name": "Taxas ML/MP", "value": stats["totalFees"], "color": "#f59e0b"},
                {"name": "Impostos", "value": stats["totalTaxes"], "color": "#ef4444"},
            ],
            "total": stats["totalRevenue"],
            "totalExpenses": total_expenses,
            "realProfit": real_profit,
        }
