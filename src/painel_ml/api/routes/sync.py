"""
Manual synchronization endpoints.
"""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from painel_ml.database.connection import get_db
from painel_ml.services.sync_service import SCOPES, SyncService, clamp_days
from painel_ml.utils.logger import get_logger
from painel_ml.workers.tasks import sync_account

logger = get_logger(__name__)

router = APIRouter()


@router.post("/{account_id}/start")
def start_sync(
    account_id: UUID,
    scope: str = Query("all"),
    days: Optional[str] = Query(None),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """
    Start a background sync for an account.

    A run that is still going is left alone; the response is the same either way.
    """
    if scope not in SCOPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"scope must be one of: {', '.join(SCOPES)}",
        )
    days_value = clamp_days(days)

    service = SyncService(db)
    sync_log, created = service.start(account_id, scope, days_value)
    if created:
        try:
            sync_account.delay(str(sync_log.id))
        except Exception as e:
            logger.error(f"Could not dispatch sync {sync_log.id}: {e}")
            service.mark_failed(sync_log, f"dispatch failed: {e}")
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                                detail="Sync worker unavailable")

    return {"status": "started", "accountId": str(account_id), "scope": scope, "days": days_value}


@router.get("/{account_id}/status")
def sync_status(account_id: UUID, db: Session = Depends(get_db)) -> Dict[str, Any]:
    return SyncService(db).get_status(account_id)
