"""
Shipment endpoints: stored shipments, SLA sync, pending shipments and SLA test data.

Three routers live here because they share the shipments service:
``router`` (/shipments), ``pending_router`` (/pending-shipments) and
``test_sla_router`` (/test-sla).
"""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from painel_ml.api.dependencies import optional_account_id, require_account_id
from painel_ml.api.schemas import OrderResponse, ShipmentResponse, dump, dump_all
from painel_ml.database.connection import get_db
from painel_ml.services.shipments import ShipmentsService
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()
pending_router = APIRouter()
test_sla_router = APIRouter()


@router.get("")
def list_shipments(
    account_id: UUID = Depends(require_account_id),
    db: Session = Depends(get_db),
):
    return dump_all(ShipmentResponse, ShipmentsService(db).find_all(account_id))


@router.get("/stats")
def shipment_stats(
    account_id: Optional[UUID] = Depends(optional_account_id),
    db: Session = Depends(get_db),
) -> Dict[str, int]:
    return ShipmentsService(db).get_stats(account_id)


@router.post("/backfill")
def backfill_shipments(
    account_id: UUID = Depends(require_account_id),
    db: Session = Depends(get_db),
) -> Dict[str, int]:
    return ShipmentsService(db).backfill_shipments(account_id)


@router.post("/sync-sla")
def sync_pending_sla(
    account_id: UUID = Depends(require_account_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    logger.info(f"Syncing SLA for pending shipments of account {account_id}")
    return ShipmentsService(db).sync_pending_sla(account_id)


@router.post("/sync/{shipment_id}")
def sync_shipment(
    shipment_id: str,
    account_id: UUID = Depends(require_account_id),
    db: Session = Depends(get_db),
):
    return dump(ShipmentResponse, ShipmentsService(db).sync_shipment(account_id, shipment_id))


@router.get("/{shipment_id}")
def get_shipment(shipment_id: UUID, db: Session = Depends(get_db)):
    return dump(ShipmentResponse, ShipmentsService(db).find_one(shipment_id))


# Pending shipments

@pending_router.get("")
def list_pending_shipments(
    account_id: Optional[UUID] = Depends(optional_account_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Shipments still to be dispatched, earliest SLA first."""
    items = []
    for entry in ShipmentsService(db).list_pending(account_id):
        item = dump(ShipmentResponse, entry["shipment"])
        item["urgency"] = entry["urgency"]
        item["timeRemaining"] = entry["time_remaining"]
        item["order"] = dump(OrderResponse, entry["order"])
        items.append(item)
    return {"items": items}


@pending_router.get("/stats")
def pending_shipment_stats(
    account_id: Optional[UUID] = Depends(optional_account_id),
    db: Session = Depends(get_db),
) -> Dict[str, int]:
    return ShipmentsService(db).pending_stats(account_id)


# SLA test data

@test_sla_router.post("/populate")
def populate_test_sla(
    account_id: UUID = Depends(require_account_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return ShipmentsService(db).populate_test_sla(account_id)
