"""
Connected seller accounts.
"""

from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from painel_ml.api.schemas import AccountResponse, AccountStatusResponse, dump, dump_all
from painel_ml.database.connection import get_db
from painel_ml.services.accounts import AccountsService
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("")
def list_accounts(db: Session = Depends(get_db)) -> Dict[str, Any]:
    return {"items": dump_all(AccountResponse, AccountsService(db).list_accounts())}


@router.get("/{seller_id}/status")
def account_status(seller_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Token presence and expiry for a seller, without exposing the tokens."""
    service = AccountsService(db)
    token = service.get_token_record_for_seller(seller_id)
    return dump(AccountStatusResponse, {
        "has_tokens": token is not None,
        "expiring_soon": service.is_token_expiring_soon(seller_id),
        "token_type": token.token_type if token else None,
        "scope": token.scope if token else None,
    })


@router.delete("/{account_id}")
def delete_account(account_id: UUID, db: Session = Depends(get_db)) -> Dict[str, Any]:
    AccountsService(db).delete_account(account_id)
    logger.info(f"Account {account_id} deleted")
    return {"success": True, "message": "Account deleted"}
