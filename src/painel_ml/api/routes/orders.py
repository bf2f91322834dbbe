"""
Order listing, statistics and marketplace sync.
"""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from painel_ml.api.dependencies import optional_account_id, require_account_id
from painel_ml.api.schemas import OrderResponse, dump_all
from painel_ml.database.connection import get_db
from painel_ml.services.orders import OrdersService
from painel_ml.utils.dates import parse_datetime
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _parse_date(value: Optional[str], name: str):
    if not value:
        return None
    parsed = parse_datetime(value)
    if parsed is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {name}: {value}")
    return parsed


@router.get("")
def list_orders(
    account_id: Optional[UUID] = Depends(optional_account_id),
    days: int = Query(30, ge=1),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    """
    Orders newest first.

    startDate and endDate together select an explicit range (endDate
    inclusive); otherwise the last `days` days are returned.
    """
    orders = OrdersService(db).list_orders(
        account_id,
        days=days,
        start_date=_parse_date(start_date, "startDate"),
        end_date=_parse_date(end_date, "endDate"),
    )
    return dump_all(OrderResponse, orders)


@router.get("/stats")
def order_stats(
    account_id: Optional[UUID] = Depends(optional_account_id),
    days: int = Query(30, ge=1),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return OrdersService(db).get_stats(account_id, days)


@router.post("/sync")
def sync_orders(
    account_id: UUID = Depends(require_account_id),
    limit: int = Query(50, ge=1, le=50),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    try:
        result = OrdersService(db).sync_all_orders(account_id, limit=limit, offset=offset)
    except Exception as e:
        logger.error(f"Order sync failed for account {account_id}: {e}")
        return {"success": False, "error": str(e)}

    return {
        "success": True,
        "message": f"Synced {result['synced']} of {result['total']} orders",
        **result,
    }


@router.post("/resync")
def resync_orders(
    account_id: UUID = Depends(require_account_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return OrdersService(db).resync(account_id)
