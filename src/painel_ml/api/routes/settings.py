"""
Per-account dashboard settings.
"""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from painel_ml.api.dependencies import require_account_id
from painel_ml.api.schemas import SettingsResponse, dump
from painel_ml.database.connection import get_db
from painel_ml.services.settings import SettingsService

router = APIRouter()


@router.get("")
def get_settings(account_id: UUID = Depends(require_account_id), db: Session = Depends(get_db)):
    return dump(SettingsResponse, SettingsService(db).get_settings(account_id))


@router.put("")
def update_settings(
    data: Optional[Dict[str, Any]] = Body(None),
    account_id: UUID = Depends(require_account_id),
    db: Session = Depends(get_db),
):
    """Partial update; camelCase and snake_case keys are both accepted."""
    return dump(SettingsResponse, SettingsService(db).update_settings(account_id, data or {}))


@router.put("/reset")
def reset_settings(account_id: UUID = Depends(require_account_id), db: Session = Depends(get_db)):
    return dump(SettingsResponse, SettingsService(db).reset_settings(account_id))
