"""
Billing periods and financial reports.
"""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from painel_ml.api.dependencies import require_account_id
from painel_ml.api.schemas import BillingChargeResponse, BillingPeriodResponse, dump, dump_all
from painel_ml.database.connection import get_db
from painel_ml.services.billing import BillingService
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/sync")
def sync_billing(
    account_id: UUID = Depends(require_account_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    try:
        result = BillingService(db).sync_billing_periods(account_id)
    except Exception as e:
        logger.error(f"Error syncing billing: {e}")
        return {"success": False, "error": str(e)}

    return {
        "success": True,
        "message": f"Synced {result['synced']} of {result['total']} periods",
        **result,
    }


@router.get("/periods")
def list_periods(
    account_id: UUID = Depends(require_account_id),
    limit: int = Query(12, ge=1, le=100),
    offset: int = Query(0, ge=0),
    period_status: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    result = BillingService(db).get_billing_periods(account_id, limit=limit, offset=offset,
                                                    status=period_status)
    periods = []
    for entry in result["periods"]:
        period = dump(BillingPeriodResponse, entry["period"])
        period["chargesCount"] = entry["chargesCount"]
        periods.append(period)
    return {**result, "periods": periods}


@router.get("/periods/{period_id}")
def period_details(period_id: UUID, db: Session = Depends(get_db)) -> Dict[str, Any]:
    details = BillingService(db).get_billing_period_details(period_id)
    return {
        "period": dump(BillingPeriodResponse, details["period"]),
        "charges": dump_all(BillingChargeResponse, details["charges"]),
        "chargesByType": {
            charge_type: dump_all(BillingChargeResponse, charges)
            for charge_type, charges in details["chargesByType"].items()
        },
    }


@router.get("/stats")
def financial_stats(
    account_id: UUID = Depends(require_account_id),
    months: int = Query(12, ge=1, le=60),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return BillingService(db).get_financial_stats(account_id, months)


@router.get("/products/profitability")
def product_profitability(
    account_id: UUID = Depends(require_account_id),
    months: int = Query(12, ge=1, le=60),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return BillingService(db).get_product_profitability(account_id, months)


@router.get("/breakdown")
def cost_breakdown(
    account_id: UUID = Depends(require_account_id),
    months: int = Query(12, ge=1, le=60),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return BillingService(db).get_cost_breakdown(account_id, months)
