"""
Listing management: create, stock and price updates, duplication.

Marketplace failures are reported in the body with success=false rather
than as HTTP errors, so the dashboard can show the marketplace message.
"""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from painel_ml.api.dependencies import require_account_id
from painel_ml.api.schemas import (
    BulkPriceRequest,
    BulkStockRequest,
    DuplicateRequest,
    PriceUpdateRequest,
    StockUpdateRequest,
)
from painel_ml.database.connection import get_db
from painel_ml.services.listing_tools import ListingManagementService
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def get_listing_service(
    account_id: UUID = Depends(require_account_id),
    db: Session = Depends(get_db),
) -> ListingManagementService:
    return ListingManagementService(db, account_id)


@router.post("/create")
def create_item(
    item_data: Dict[str, Any] = Body(...),
    service: ListingManagementService = Depends(get_listing_service),
) -> Dict[str, Any]:
    return service.create_item(item_data)


@router.get("/item/{item_id}")
def item_details(item_id: str, service: ListingManagementService = Depends(get_listing_service)):
    return service.get_item_details(item_id)


# Bulk routes are declared before the /{item_id} ones so "bulk" is never read as an id

@router.put("/stock/bulk")
def update_stock_bulk(
    request: BulkStockRequest,
    service: ListingManagementService = Depends(get_listing_service),
) -> Dict[str, Any]:
    entries = [entry.model_dump(by_alias=True) for entry in request.items]
    logger.info(f"Bulk stock update for {len(entries)} item(s)")
    return service.update_stock_bulk(entries)


@router.put("/price/bulk")
def update_price_bulk(
    request: BulkPriceRequest,
    service: ListingManagementService = Depends(get_listing_service),
) -> Dict[str, Any]:
    entries = [entry.model_dump(by_alias=True) for entry in request.items]
    logger.info(f"Bulk price update for {len(entries)} item(s)")
    return service.update_price_bulk(entries)


@router.put("/stock/{item_id}")
def update_stock(
    item_id: str,
    request: StockUpdateRequest,
    service: ListingManagementService = Depends(get_listing_service),
) -> Dict[str, Any]:
    return service.update_stock(item_id, request.quantity)


@router.put("/price/{item_id}")
def update_price(
    item_id: str,
    request: PriceUpdateRequest,
    service: ListingManagementService = Depends(get_listing_service),
) -> Dict[str, Any]:
    return service.update_price(item_id, request.price)


@router.post("/sync-bids")
def sync_bids(service: ListingManagementService = Depends(get_listing_service)) -> Dict[str, Any]:
    return service.sync_all()


@router.get("/duplicate/{item_id}/preview")
def preview_duplicate(item_id: str, service: ListingManagementService = Depends(get_listing_service)):
    return service.preview_duplicate(item_id)


@router.post("/duplicate/{item_id}")
def duplicate_item(
    item_id: str,
    request: Optional[DuplicateRequest] = Body(None),
    service: ListingManagementService = Depends(get_listing_service),
) -> Dict[str, Any]:
    request = request or DuplicateRequest()
    modifications = request.model_dump(by_alias=True, exclude_none=True)
    logger.info(f"Duplicating item {item_id} x{request.quantity}")
    return service.duplicate_item(item_id, modifications)
