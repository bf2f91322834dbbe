"""
Listing management: create, stock and price updates, and duplication.

Marketplace failures on user-triggered operations are reported in the
response body (``success: false``) so the dashboard can show the
marketplace message, matching how MercadoLibre explains rejected edits.
"""

import copy
import time
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from painel_ml.marketplaces.mercadolibre_client import MercadoLibreClient
from painel_ml.services.items import ItemsService
from painel_ml.utils.exceptions import MercadoLibreAPIError, PainelError
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

# Attributes MercadoLibre rejects or recomputes when a listing is copied
SKIPPED_ATTRIBUTES = {
    "NET_VOLUME",
    "NET_WEIGHT",
    "SERVING_VOLUME",
    "SERVING_WEIGHT",
    "UNIT_VOLUME",
    "UNIT_WEIGHT",
    "MIN_RECOMMENDED_AGE",
    "IS_TOM_BRAND",
}

MAX_PICTURES = 10
MAX_TITLE_LENGTH = 60
COPY_DELAY_SECONDS = 0.5

AUCTION_MESSAGE = (
    "Este anúncio está configurado como leilão. Não é possível alterar o preço "
    "de anúncios em formato de leilão através da API."
)
BIDS_MESSAGE = (
    "Não é possível alterar preço de anúncios com lances ativos ou em formato de leilão. "
    "Esta é uma restrição do Mercado Livre."
)


def is_auction(item: Dict[str, Any]) -> bool:
    listing_type = (item.get("listing_type_id") or "").lower()
    return listing_type.startswith("auction") or bool(item.get("non_mercado_pago_payment_methods"))


def keep_attribute(attr: Dict[str, Any]) -> bool:
    attr_id = attr.get("id")
    if not attr_id or attr_id in SKIPPED_ATTRIBUTES:
        return False
    if attr.get("value_id"):
        return True
    value_name = attr.get("value_name")
    if value_name and isinstance(value_name, str):
        lowered = value_name.lower()
        return not (lowered.startswith("0 ") or lowered in ("0", "1"))
    return False


def filter_attributes(attributes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    filtered = []
    for attr in attributes or []:
        if not keep_attribute(attr):
            continue
        data = {"id": attr["id"]}
        if attr.get("value_id"):
            data["value_id"] = attr["value_id"]
        if attr.get("value_name"):
            data["value_name"] = attr["value_name"]
        filtered.append(data)

    ids = {a["id"] for a in filtered}
    if "SALE_FORMAT" in ids and "UNITS_PER_PACK" not in ids:
        filtered.append({"id": "UNITS_PER_PACK", "value_name": "1"})
    return filtered


def merge_first_variation(item: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a listing with variations into a simple listing based on its first variation."""
    merged = copy.deepcopy(item)
    variations = merged.get("variations") or []
    if not variations:
        return merged

    first = variations[0]
    if first.get("price"):
        merged["price"] = first["price"]
    if first.get("available_quantity") is not None:
        merged["available_quantity"] = first["available_quantity"]

    attributes = merged.setdefault("attributes", [])
    known = {a.get("id") for a in attributes}
    for source in (first.get("attribute_combinations") or [], first.get("attributes") or []):
        for attr in source:
            if attr.get("id") not in known:
                attributes.append({
                    "id": attr.get("id"),
                    "value_id": attr.get("value_id"),
                    "value_name": attr.get("value_name"),
                })
                known.add(attr.get("id"))
    return merged


def build_copy_payload(item: Dict[str, Any]) -> Dict[str, Any]:
    """Fields MercadoLibre accepts when creating a listing from an existing one."""
    quantity = item.get("available_quantity") or 0
    payload = {
        "title": item.get("title"),
        "category_id": item.get("category_id"),
        "price": item.get("price"),
        "currency_id": item.get("currency_id") or "BRL",
        "available_quantity": quantity if quantity > 0 else 1,
        "buying_mode": item.get("buying_mode"),
        "listing_type_id": item.get("listing_type_id"),
        "condition": item.get("condition"),
    }

    pictures = item.get("pictures") or []
    if pictures:
        payload["pictures"] = [{"source": p.get("secure_url") or p.get("url")} for p in pictures[:MAX_PICTURES]]

    attributes = filter_attributes(item.get("attributes") or [])
    if attributes:
        payload["attributes"] = attributes

    shipping = item.get("shipping")
    if shipping:
        payload["shipping"] = {
            "mode": shipping.get("mode") or "me2",
            "free_shipping": bool(shipping.get("free_shipping")),
        }
        if "local_pick_up" in shipping and shipping["local_pick_up"] is not None:
            payload["shipping"]["local_pick_up"] = bool(shipping["local_pick_up"])

    return {k: v for k, v in payload.items() if v is not None}


def copy_title(original: str, modifications: Dict[str, Any], index: int, total: int) -> str:
    if modifications.get("titleSuffix"):
        title = f"{original} {modifications['titleSuffix']}"
    elif modifications.get("titlePrefix"):
        title = f"{modifications['titlePrefix']} {original}"
    elif modifications.get("titleReplace"):
        replace = modifications["titleReplace"]
        title = original.replace(replace.get("from", ""), replace.get("to", ""), 1)
    else:
        title = f"{original} - Cópia"

    if total > 1:
        title = f"{title} {index + 1}"
    return title[:MAX_TITLE_LENGTH]


def describe_error(error: Exception) -> Dict[str, Any]:
    if isinstance(error, MercadoLibreAPIError):
        return {"error": error.api_message(), "errorCode": error.api_code(), "details": error.response_data}
    if isinstance(error, PainelError):
        return {"error": error.message, "errorCode": None, "details": error.details or None}
    return {"error": str(error), "errorCode": None, "details": None}


class ListingManagementService:
    def __init__(self, db: Session, account_id: UUID, client: Optional[MercadoLibreClient] = None):
        self.db = db
        self.account_id = account_id
        self.client = client or MercadoLibreClient(db, account_id)
        self.items = ItemsService(db, self.client)

    def create_item(self, item_data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            created = self.client.create_item(item_data)
            self.items.sync_item(self.account_id, created["id"])
        except Exception as e:
            logger.error(f"Error creating item: {e}")
            return {"success": False, "error": describe_error(e)["error"]}
        return {"success": True, "itemId": created["id"], "permalink": created.get("permalink")}

    def get_item_details(self, item_id: str) -> Dict[str, Any]:
        try:
            return {"success": True, "data": self.client.get_item(item_id)}
        except Exception as e:
            logger.error(f"Error fetching item details for {item_id}: {e}")
            return {"success": False, "error": describe_error(e)["error"]}

    def update_stock(self, item_id: str, quantity: int) -> Dict[str, Any]:
        try:
            self.client.update_stock(item_id, quantity)
            self.items.set_local_values(item_id, available=quantity)
        except Exception as e:
            logger.error(f"Error updating stock for {item_id}: {e}")
            return {"success": False, "error": describe_error(e)["error"]}
        return {"success": True, "itemId": item_id, "newQuantity": quantity}

    def update_price(self, item_id: str, price: float) -> Dict[str, Any]:
        try:
            details = self.client.get_item(item_id)
            if is_auction(details):
                logger.warning(f"Item {item_id} is an auction listing ({details.get('listing_type_id')})")
                return {
                    "success": False,
                    "error": AUCTION_MESSAGE,
                    "itemDetails": {
                        "listing_type_id": details.get("listing_type_id"),
                        "status": details.get("status"),
                        "isAuction": True,
                    },
                }
            if details.get("catalog_product_id"):
                logger.warning(f"Item {item_id} is a catalog listing ({details['catalog_product_id']})")

            self.client.update_price(item_id, price)
            self.items.set_local_values(item_id, price=price)
        except Exception as e:
            logger.error(f"Error updating price for {item_id}: {e}")
            info = describe_error(e)
            if "has_bids" in info["error"] or "not_modifiable" in info["error"]:
                info["error"] = BIDS_MESSAGE
            return {"success": False, **info}
        return {"success": True, "itemId": item_id, "newPrice": price}

    def _bulk(self, entries: List[Dict[str, Any]], field: str) -> Dict[str, Any]:
        results = []
        for entry in entries:
            item_id = entry["itemId"]
            try:
                if field == "quantity":
                    self.client.update_stock(item_id, entry["quantity"])
                    self.items.set_local_values(item_id, available=entry["quantity"])
                else:
                    self.client.update_price(item_id, entry["price"])
                    self.items.set_local_values(item_id, price=entry["price"])
                results.append({"itemId": item_id, "success": True})
            except Exception as e:
                logger.error(f"Error updating {field} for {item_id}: {e}")
                results.append({"itemId": item_id, "success": False, "error": describe_error(e)["error"]})

        successful = sum(1 for r in results if r["success"])
        return {
            "total": len(entries),
            "successful": successful,
            "failed": len(results) - successful,
            "results": results,
        }

    def update_stock_bulk(self, entries: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self._bulk(entries, "quantity")

    def update_price_bulk(self, entries: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self._bulk(entries, "price")

    def sync_all(self) -> Dict[str, Any]:
        try:
            result = self.items.sync_all_items(self.account_id)
        except Exception as e:
            logger.error(f"Error in item resync: {e}")
            return {"success": False, "error": describe_error(e)["error"]}
        return {"success": True, "message": "Sincronização de informações de lances concluída", **result}

    def preview_duplicate(self, item_id: str) -> Dict[str, Any]:
        try:
            original = self.client.get_item(item_id)
        except Exception as e:
            return {"success": False, "error": describe_error(e)["error"]}

        payload = build_copy_payload(original)
        payload["title"] = f"{original.get('title')} - Preview"
        return {
            "success": True,
            "originalItem": {
                "id": original.get("id"),
                "title": original.get("title"),
                "hasVariations": len(original.get("variations") or []),
                "status": original.get("status"),
            },
            "dataToSend": payload,
        }

    def duplicate_item(self, item_id: str, modifications: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create one or more copies of a listing.

        Listings with variations are refused unless ignoreVariations is set,
        in which case the copy is a simple listing built from the first
        variation. Only active listings can be copied.
        """
        quantity = modifications.get("quantity") or 1
        if quantity < 1:
            quantity = 1

        try:
            original = self.client.get_item(item_id)
        except Exception as e:
            logger.error(f"Error loading item {item_id} for duplication: {e}")
            info = describe_error(e)
            return {"success": False, "error": info["error"], "details": info["details"]}

        variations = original.get("variations") or []
        if variations:
            if not modifications.get("ignoreVariations"):
                logger.warning(f"Item {item_id} has {len(variations)} variations")
                return {
                    "success": False,
                    "error": (
                        f"Este anúncio possui {len(variations)} variação(ões). A API do Mercado Livre "
                        "não permite duplicar anúncios com variações."
                    ),
                    "reason": "HAS_VARIATIONS",
                    "variationsCount": len(variations),
                    "canCreateWithoutVariations": True,
                }
            original = merge_first_variation(original)

        if original.get("status") != "active":
            logger.warning(f"Item {item_id} is not active (status: {original.get('status')})")
            return {
                "success": False,
                "error": f"Este anúncio não está ativo (status: {original.get('status')}).",
                "reason": "NOT_ACTIVE",
                "status": original.get("status"),
            }

        base_payload = build_copy_payload(original)
        created = []
        errors = []
        for index in range(quantity):
            payload = copy.deepcopy(base_payload)
            payload["title"] = copy_title(original.get("title") or "", modifications, index, quantity)
            try:
                new_item = self.client.create_item(payload)
                self.items.sync_item(self.account_id, new_item["id"])
                created.append({
                    "itemId": new_item["id"],
                    "title": new_item.get("title"),
                    "permalink": new_item.get("permalink"),
                })
            except Exception as e:
                logger.error(f"Error creating copy {index + 1}/{quantity} of {item_id}: {e}")
                info = describe_error(e)
                errors.append({"index": index + 1, "error": info["error"], "details": info["details"]})

            if index < quantity - 1:
                time.sleep(COPY_DELAY_SECONDS)

        result = {
            "success": bool(created),
            "originalItemId": item_id,
            "created": len(created),
            "failed": len(errors),
            "total": quantity,
            "items": created,
        }
        if errors:
            result["errors"] = errors
        return result
