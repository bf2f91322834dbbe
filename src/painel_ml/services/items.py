"""
Item synchronization and listing queries.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from painel_ml.database.models import Item
from painel_ml.marketplaces.mercadolibre_client import MercadoLibreClient
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)


def first_picture_url(item_data: Dict[str, Any]) -> Optional[str]:
    pictures = item_data.get("pictures") or []
    if not pictures:
        return None
    return pictures[0].get("url") or pictures[0].get("secure_url")


class ItemsService:
    def __init__(self, db: Session, client: Optional[MercadoLibreClient] = None):
        self.db = db
        self._client = client

    def client_for(self, account_id: UUID) -> MercadoLibreClient:
        if self._client is None or self._client.account_id != account_id:
            self._client = MercadoLibreClient(self.db, account_id)
        return self._client

    def sync_item(self, account_id: UUID, item_id: str) -> Item:
        """Fetch an item from MercadoLibre and upsert it."""
        logger.info(f"Syncing item {item_id} for account {account_id}")
        item_data = self.client_for(account_id).get_item(item_id)
        return self.upsert_item(account_id, item_id, item_data)

    def upsert_item(self, account_id: UUID, item_id: str, item_data: Dict[str, Any]) -> Item:
        values = {
            "title": item_data.get("title"),
            "status": item_data.get("status"),
            "price": item_data.get("price") or 0,
            "available": item_data.get("available_quantity") or 0,
            "sold": item_data.get("sold_quantity") or 0,
            "thumbnail": item_data.get("thumbnail"),
            "picture": first_picture_url(item_data),
            "permalink": item_data.get("permalink"),
        }

        item = self.db.query(Item).filter(Item.meli_item_id == item_id).first()
        try:
            if item is None:
                item = Item(account_id=account_id, meli_item_id=item_id, **values)
                self.db.add(item)
            else:
                for field, value in values.items():
                    setattr(item, field, value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.debug(f"Item {item_id} stored")
        return item

    def sync_all_items(self, account_id: UUID) -> Dict[str, int]:
        """Re-sync every stored item of the account (refreshes bid and price info)."""
        item_ids = [row.meli_item_id for row in
                    self.db.query(Item.meli_item_id).filter(Item.account_id == account_id).all()]

        updated = 0
        errors = 0
        for item_id in item_ids:
            try:
                self.sync_item(account_id, item_id)
                updated += 1
            except Exception as e:
                logger.error(f"Error syncing item {item_id}: {e}")
                errors += 1

        logger.info(f"Item resync finished: {updated} updated, {errors} errors")
        return {"updated": updated, "errors": errors, "total": len(item_ids)}

    def list_items(self, account_id: Optional[UUID] = None, limit: int = 100) -> List[Item]:
        query = self.db.query(Item)
        if account_id:
            query = query.filter(Item.account_id == account_id)
        return query.order_by(Item.updated_at.desc()).limit(limit).all()

    def get_stats(self, account_id: Optional[UUID] = None) -> Dict[str, int]:
        query = self.db.query(Item)
        if account_id:
            query = query.filter(Item.account_id == account_id)
        return {
            "total": query.count(),
            "active": query.filter(Item.status == "active").count(),
            "paused": query.filter(Item.status == "paused").count(),
            "closed": query.filter(Item.status == "closed").count(),
        }

    def set_local_values(self, item_id: str, **values) -> None:
        """Mirror a successful marketplace update on the stored row, if present."""
        item = self.db.query(Item).filter(Item.meli_item_id == item_id).first()
        if item is None:
            return
        for field, value in values.items():
            setattr(item, field, value)
        self.db.commit()
