"""
Shared route dependencies.
"""

from typing import Optional
from uuid import UUID

from fastapi import HTTPException, Query, status


def require_account_id(account_id: Optional[UUID] = Query(None, alias="accountId")) -> UUID:
    if account_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="accountId is required")
    return account_id


def optional_account_id(account_id: Optional[UUID] = Query(None, alias="accountId")) -> Optional[UUID]:
    return account_id
