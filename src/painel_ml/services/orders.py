"""
Order synchronization and reporting.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from painel_ml.database.models import Order
from painel_ml.marketplaces.mercadolibre_client import MercadoLibreClient, paged_results
from painel_ml.services.accounts import AccountsService
from painel_ml.utils.dates import parse_datetime
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

ORDER_STATUSES = ("paid", "confirmed", "cancelled", "pending")
RESYNC_LIMIT = 50


class OrdersService:
    def __init__(self, db: Session, client: Optional[MercadoLibreClient] = None):
        self.db = db
        self._client = client

    def client_for(self, account_id: UUID) -> MercadoLibreClient:
        if self._client is None or self._client.account_id != account_id:
            self._client = MercadoLibreClient(self.db, account_id)
        return self._client

    def sync_order(self, account_id: UUID, order_id: str) -> Order:
        """Fetch an order and upsert it, resolving the permalink of its first item."""
        logger.info(f"Syncing order {order_id} for account {account_id}")
        client = self.client_for(account_id)
        order_data = client.get_order(order_id)

        permalink = None
        item_id = self._first_item(order_data).get("id")
        if item_id:
            try:
                permalink = client.get_item(item_id).get("permalink")
            except Exception as e:
                logger.warning(f"Could not fetch item permalink for {item_id}: {e}")

        return self.upsert_order(account_id, order_data, item_permalink=permalink)

    @staticmethod
    def _first_item(order_data: Dict[str, Any]) -> Dict[str, Any]:
        order_items = order_data.get("order_items") or []
        if not order_items:
            return {}
        return order_items[0].get("item") or {}

    def upsert_order(self, account_id: UUID, order_data: Dict[str, Any],
                     item_permalink: Optional[str] = None) -> Order:
        order_id = str(order_data["id"])
        first_item = self._first_item(order_data)
        buyer = order_data.get("buyer") or {}

        values = {
            "status": order_data.get("status"),
            "total_amount": order_data.get("total_amount") or 0,
            "buyer_id": str(buyer["id"]) if buyer.get("id") is not None else None,
            "buyer_nickname": buyer.get("nickname"),
            "item_id": first_item.get("id"),
            "item_title": first_item.get("title"),
        }
        if item_permalink:
            values["item_permalink"] = item_permalink

        order = self.db.query(Order).filter(Order.meli_order_id == order_id).first()
        try:
            if order is None:
                order = Order(
                    account_id=account_id,
                    meli_order_id=order_id,
                    date_created=parse_datetime(order_data.get("date_created")),
                    **values,
                )
                self.db.add(order)
            else:
                for field, value in values.items():
                    setattr(order, field, value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return order

    def sync_all_orders(self, account_id: UUID, limit: int = 50, offset: int = 0) -> Dict[str, int]:
        """Sync one page of the seller's most recent orders."""
        account = AccountsService(self.db).get_account(account_id)
        data = self.client_for(account_id).search_orders(account.seller_id, offset=offset, limit=limit)
        results = paged_results(data)

        synced = 0
        for order_data in results:
            try:
                self.upsert_order(account_id, order_data)
                synced += 1
            except Exception as e:
                logger.error(f"Error storing order {order_data.get('id')}: {e}")

        total = (data.get("paging") or {}).get("total", len(results))
        logger.info(f"Synced {synced} of {total} orders for account {account_id}")
        return {"synced": synced, "total": total}

    def resync(self, account_id: UUID) -> Dict[str, Any]:
        order_ids = [row.meli_order_id for row in
                     self.db.query(Order.meli_order_id)
                     .filter(Order.account_id == account_id)
                     .limit(RESYNC_LIMIT).all()]

        results = []
        for order_id in order_ids:
            try:
                self.sync_order(account_id, order_id)
                results.append({"orderId": order_id, "status": "success"})
            except Exception as e:
                logger.error(f"Error re-syncing order {order_id}: {e}")
                results.append({"orderId": order_id, "status": "error", "error": str(e)})

        return {"message": f"Re-synced {len(results)} orders", "results": results}

    def list_orders(self, account_id: Optional[UUID] = None, days: int = 30,
                    start_date: Optional[datetime] = None, end_date: Optional[datetime] = None) -> List[Order]:
        if start_date and end_date:
            date_from = start_date
            # The end date includes its whole day
            date_to = end_date.replace(hour=23, minute=59, second=59, microsecond=999999)
        else:
            date_to = datetime.utcnow()
            date_from = date_to - timedelta(days=days)

        query = self.db.query(Order).filter(Order.date_created >= date_from, Order.date_created <= date_to)
        if account_id:
            query = query.filter(Order.account_id == account_id)
        return query.order_by(Order.date_created.desc()).all()

    def get_stats(self, account_id: Optional[UUID] = None, days: int = 30) -> Dict[str, Any]:
        date_from = datetime.utcnow() - timedelta(days=days)
        query = self.db.query(Order).filter(Order.date_created >= date_from)
        if account_id:
            query = query.filter(Order.account_id == account_id)

        stats = {"total": query.count()}
        for status in ORDER_STATUSES:
            stats[status] = query.filter(Order.status == status).count()
        stats["totalAmount"] = float(query.with_entities(func.coalesce(func.sum(Order.total_amount), 0)).scalar())
        return stats
