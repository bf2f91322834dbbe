"""
Shipment synchronization, SLA tracking and the pending-dispatch views.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from painel_ml.database.models import Order, Shipment
from painel_ml.marketplaces.mercadolibre_client import MercadoLibreClient
from painel_ml.services.sla import (
    PENDING_STATUSES,
    classify_urgency,
    format_time_remaining,
)
from painel_ml.utils.dates import parse_datetime
from painel_ml.utils.exceptions import NotFoundError
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

PENDING_LIST_LIMIT = 100
TEST_DATA_SHIPMENTS = 5

# (sla_status, sla_service, expected offset, delivery_limit offset, delivery_final offset)
TEST_SLA_PRESETS = [
    ("on_time", "standard", timedelta(days=2), timedelta(days=5), timedelta(days=7)),
    ("on_time", "xd_same_day", timedelta(hours=6), timedelta(days=1), timedelta(days=2)),
    ("on_time", "next_day", timedelta(hours=3), timedelta(days=1), timedelta(days=3)),
    ("delayed", "standard", timedelta(hours=-2), timedelta(days=1), timedelta(days=3)),
    ("on_time", "standard", timedelta(hours=20), timedelta(days=3), timedelta(days=5)),
]


def _date_field(data: Optional[Dict[str, Any]], *path: str) -> Optional[datetime]:
    value: Any = data or {}
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return parse_datetime(value)


class ShipmentsService:
    def __init__(self, db: Session, client: Optional[MercadoLibreClient] = None):
        self.db = db
        self._client = client

    def client_for(self, account_id: UUID) -> MercadoLibreClient:
        if self._client is None or self._client.account_id != account_id:
            self._client = MercadoLibreClient(self.db, account_id)
        return self._client

    def find_all(self, account_id: UUID) -> List[Shipment]:
        return (
            self.db.query(Shipment)
            .filter(Shipment.account_id == account_id)
            .order_by(Shipment.created_at.desc())
            .all()
        )

    def find_one(self, shipment_id: UUID) -> Shipment:
        shipment = self.db.query(Shipment).filter(Shipment.id == shipment_id).first()
        if shipment is None:
            raise NotFoundError("Shipment", shipment_id)
        return shipment

    def sync_shipment(self, account_id: UUID, shipment_id: str) -> Shipment:
        """Fetch a shipment and upsert it. Pending shipments also get their SLA refreshed."""
        logger.info(f"Syncing shipment {shipment_id} for account {account_id}")
        data = self.client_for(account_id).get_shipment(shipment_id)

        values = {
            "status": data.get("status") or "unknown",
            "substatus": data.get("substatus"),
            "tracking_number": data.get("tracking_number"),
            "tracking_method": data.get("tracking_method"),
            "estimated_delivery": _date_field(data, "estimated_delivery_time", "date"),
            "shipped_date": _date_field(data, "status_history", "date_shipped")
            or _date_field(data, "status_history", "shipped", "date_shipped"),
            "delivered_date": _date_field(data, "status_history", "date_delivered")
            or _date_field(data, "status_history", "delivered", "date_delivered"),
            "receiver_address": data.get("receiver_address"),
            "sender_address": data.get("sender_address"),
            "cost": data.get("cost") or 0,
        }

        shipment = self.db.query(Shipment).filter(Shipment.meli_shipment_id == shipment_id).first()
        try:
            if shipment is None:
                shipment = Shipment(
                    account_id=account_id,
                    meli_shipment_id=shipment_id,
                    order_id=str(data["order_id"]) if data.get("order_id") is not None else None,
                    mode=data.get("mode") or "unknown",
                    **values,
                )
                self.db.add(shipment)
            else:
                for field, value in values.items():
                    setattr(shipment, field, value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        if data.get("status") in PENDING_STATUSES:
            self.sync_shipment_sla(account_id, shipment_id)

        return shipment

    def sync_shipment_sla(self, account_id: UUID, shipment_id: str) -> bool:
        """Refresh SLA and lead time. Failures are logged and reported as False."""
        client = self.client_for(account_id)
        try:
            sla = client.get_shipment_sla(shipment_id) or {}
            lead_time = client.get_shipment_lead_time(shipment_id) or {}

            shipment = self.db.query(Shipment).filter(Shipment.meli_shipment_id == shipment_id).first()
            if shipment is None:
                raise NotFoundError("Shipment", shipment_id)

            shipment.sla_status = sla.get("status")
            shipment.sla_service = sla.get("service")
            shipment.sla_expected_date = parse_datetime(sla.get("expected_date"))
            shipment.sla_last_updated = parse_datetime(sla.get("last_updated"))
            shipment.handling_limit = _date_field(lead_time, "estimated_handling_limit", "date")
            shipment.delivery_limit = _date_field(lead_time, "estimated_delivery_limit", "date")
            shipment.delivery_final = _date_field(lead_time, "estimated_delivery_final", "date")
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.warning(f"Could not sync SLA for shipment {shipment_id}: {e}")
            return False
        return True

    def backfill_shipments(self, account_id: UUID) -> Dict[str, int]:
        """Sync the shipment of every stored order."""
        order_ids = [row.meli_order_id for row in
                     self.db.query(Order.meli_order_id).filter(Order.account_id == account_id).all()]
        client = self.client_for(account_id)

        synced_count = 0
        error_count = 0
        for order_id in order_ids:
            try:
                shipping_id = (client.get_order(order_id).get("shipping") or {}).get("id")
                if shipping_id:
                    self.sync_shipment(account_id, str(shipping_id))
                    synced_count += 1
            except Exception as e:
                logger.error(f"Error processing order {order_id}: {e}")
                error_count += 1

        logger.info(f"Shipments backfill completed: {synced_count} synced, {error_count} errors")
        return {"syncedCount": synced_count, "errorCount": error_count}

    def sync_pending_sla(self, account_id: UUID) -> Dict[str, Any]:
        pending = (
            self.db.query(Shipment)
            .filter(Shipment.account_id == account_id, Shipment.status.in_(PENDING_STATUSES))
            .all()
        )

        synced_count = 0
        error_count = 0
        for shipment in pending:
            if self.sync_shipment_sla(account_id, shipment.meli_shipment_id):
                synced_count += 1
            else:
                error_count += 1

        return {
            "message": "SLA sync completed",
            "syncedCount": synced_count,
            "errorCount": error_count,
            "total": len(pending),
        }

    def get_stats(self, account_id: Optional[UUID] = None) -> Dict[str, int]:
        query = self.db.query(Shipment)
        if account_id:
            query = query.filter(Shipment.account_id == account_id)
        return {
            "total": query.count(),
            "pending": query.filter(Shipment.status.in_(("pending", "ready_to_ship"))).count(),
            "shipped": query.filter(Shipment.status == "shipped").count(),
            "delivered": query.filter(Shipment.status == "delivered").count(),
        }

    # Pending dispatch

    def _pending_query(self, account_id: Optional[UUID] = None):
        query = self.db.query(Shipment).filter(Shipment.status.in_(PENDING_STATUSES))
        if account_id:
            query = query.filter(Shipment.account_id == account_id)
        return query

    def list_pending(self, account_id: Optional[UUID] = None,
                     now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        Pending shipments, earliest deadline first, each with its urgency and order.

        Shipments without a deadline come last.
        """
        now = now or datetime.utcnow()
        shipments = (
            self._pending_query(account_id)
            .order_by(Shipment.sla_expected_date.is_(None), Shipment.sla_expected_date.asc())
            .limit(PENDING_LIST_LIMIT)
            .all()
        )

        order_ids = {s.order_id for s in shipments if s.order_id}
        orders = {}
        if order_ids:
            orders = {o.meli_order_id: o for o in
                      self.db.query(Order).filter(Order.meli_order_id.in_(order_ids)).all()}

        return [
            {
                "shipment": shipment,
                "order": orders.get(shipment.order_id),
                "urgency": classify_urgency(shipment.sla_expected_date, now),
                "time_remaining": format_time_remaining(shipment.sla_expected_date, now),
            }
            for shipment in shipments
        ]

    def pending_stats(self, account_id: Optional[UUID] = None,
                      now: Optional[datetime] = None) -> Dict[str, int]:
        now = now or datetime.utcnow()
        query = self._pending_query(account_id)
        return {
            "total": query.count(),
            "onTime": query.filter(Shipment.sla_status == "on_time").count(),
            "delayed": query.filter(Shipment.sla_status == "delayed").count(),
            "urgent": query.filter(
                Shipment.sla_expected_date >= now,
                Shipment.sla_expected_date <= now + timedelta(hours=24),
            ).count(),
        }

    def populate_test_sla(self, account_id: UUID, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Write fixed SLA scenarios onto up to five pending shipments for UI testing."""
        now = now or datetime.utcnow()
        shipments = self._pending_query(account_id).limit(TEST_DATA_SHIPMENTS).all()
        if not shipments:
            return {"message": "No pending shipments found"}

        updated = 0
        try:
            for shipment, preset in zip(shipments, TEST_SLA_PRESETS):
                status, service, expected, delivery, final = preset
                shipment.sla_status = status
                shipment.sla_service = service
                shipment.sla_expected_date = now + expected
                shipment.handling_limit = now + expected
                shipment.delivery_limit = now + delivery
                shipment.delivery_final = now + final
                updated += 1
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Test SLA data written to {updated} shipment(s)")
        return {"message": "Test SLA data populated successfully", "updatedCount": updated}

