"""
Stored listings.
"""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from painel_ml.api.dependencies import optional_account_id
from painel_ml.api.schemas import ItemResponse, dump_all
from painel_ml.database.connection import get_db
from painel_ml.services.items import ItemsService

router = APIRouter()


@router.get("")
def list_items(
    account_id: Optional[UUID] = Depends(optional_account_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Most recently updated listings, 100 at most."""
    return {"items": dump_all(ItemResponse, ItemsService(db).list_items(account_id))}


@router.get("/stats")
def item_stats(
    account_id: Optional[UUID] = Depends(optional_account_id),
    db: Session = Depends(get_db),
) -> Dict[str, int]:
    return ItemsService(db).get_stats(account_id)
