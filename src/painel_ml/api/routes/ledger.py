"""
Expenses, taxes and extra revenues.

The three resources expose identical CRUD routes; build_ledger_router()
creates one router per entry model.
"""

from typing import Any, Callable, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from painel_ml.api.dependencies import require_account_id
from painel_ml.api.schemas import LedgerEntryCreate, LedgerEntryResponse, LedgerEntryUpdate, dump, dump_all
from painel_ml.database.connection import get_db
from painel_ml.services.ledger import LedgerService, expenses_service, extra_revenues_service, taxes_service
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)


def _expenses_summary(service: LedgerService, account_id: UUID) -> Dict[str, Any]:
    expenses = service.find_all(account_id)
    return {
        "totalMonthly": sum(e.amount for e in expenses),
        "totalExpenses": len(expenses),
        "expenses": dump_all(LedgerEntryResponse, expenses),
    }


def _category_summary(service: LedgerService, account_id: UUID) -> Dict[str, Any]:
    summary = service.get_summary_by_category(account_id)
    return {"summary": summary, "total": sum(bucket["total"] for bucket in summary)}


def build_ledger_router(
    factory: Callable[[Session], LedgerService],
    label: str,
    summarize: Callable[[LedgerService, UUID], Dict[str, Any]] = _category_summary,
) -> APIRouter:
    router = APIRouter()

    def get_service(db: Session = Depends(get_db)) -> LedgerService:
        return factory(db)

    @router.post("")
    def create_entry(
        data: LedgerEntryCreate,
        account_id: UUID = Depends(require_account_id),
        service: LedgerService = Depends(get_service),
    ):
        entry = service.create(account_id, data.model_dump(exclude_none=True))
        return dump(LedgerEntryResponse, entry)

    @router.get("")
    def list_entries(
        account_id: UUID = Depends(require_account_id),
        include_inactive: bool = Query(False, alias="includeInactive"),
        service: LedgerService = Depends(get_service),
    ):
        return dump_all(LedgerEntryResponse, service.find_all(account_id, include_inactive))

    @router.get("/summary")
    def entries_summary(
        account_id: UUID = Depends(require_account_id),
        service: LedgerService = Depends(get_service),
    ) -> Dict[str, Any]:
        return summarize(service, account_id)

    @router.get("/{entry_id}")
    def get_entry(entry_id: UUID, service: LedgerService = Depends(get_service)):
        return dump(LedgerEntryResponse, service.find_one(entry_id))

    @router.put("/{entry_id}")
    def update_entry(
        entry_id: UUID,
        data: LedgerEntryUpdate,
        service: LedgerService = Depends(get_service),
    ):
        entry = service.update(entry_id, data.model_dump(exclude_unset=True))
        return dump(LedgerEntryResponse, entry)

    @router.delete("/{entry_id}")
    def delete_entry(entry_id: UUID, service: LedgerService = Depends(get_service)) -> Dict[str, Any]:
        service.remove(entry_id)
        return {"success": True, "message": f"{label} deleted successfully"}

    return router


expenses_router = build_ledger_router(expenses_service, "Expense", _expenses_summary)
taxes_router = build_ledger_router(taxes_service, "Tax")
extra_revenues_router = build_ledger_router(extra_revenues_service, "Extra revenue")
