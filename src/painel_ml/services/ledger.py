"""
Manually maintained ledger entries: expenses, taxes and extra revenues.

The three entry types share one table shape, so one service class is
parametrized by the model it manages.
"""

from typing import Any, Dict, List, Type
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from painel_ml.database.models import Expense, ExtraRevenue, Tax
from painel_ml.utils.dates import month_bounds, parse_datetime
from painel_ml.utils.exceptions import NotFoundError, ValidationError
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

EDITABLE_FIELDS = (
    "name",
    "category",
    "amount",
    "description",
    "is_recurring",
    "start_date",
    "end_date",
    "is_active",
)
DATE_FIELDS = ("start_date", "end_date")


class LedgerService:
    def __init__(self, db: Session, model: Type):
        self.db = db
        self.model = model

    @property
    def resource(self) -> str:
        return self.model.__name__

    def _clean(self, data: Dict[str, Any]) -> Dict[str, Any]:
        values = {}
        for field in EDITABLE_FIELDS:
            if field not in data:
                continue
            value = data[field]
            if field in DATE_FIELDS and value is not None:
                parsed = parse_datetime(value)
                if parsed is None:
                    raise ValidationError(f"Invalid date for {field}", field=field, value=value,
                                          expected_type="ISO 8601 date")
                value = parsed
            values[field] = value
        return values

    def create(self, account_id: UUID, data: Dict[str, Any]):
        values = self._clean(data)
        for required in ("name", "category", "amount"):
            if values.get(required) in (None, ""):
                raise ValidationError(f"{required} is required", field=required)
        if values.get("start_date") is None:
            values.pop("start_date", None)

        entry = self.model(account_id=account_id, **values)
        try:
            self.db.add(entry)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"{self.resource} '{entry.name}' created for account {account_id}")
        return entry

    def find_all(self, account_id: UUID, include_inactive: bool = False) -> List:
        query = self.db.query(self.model).filter(self.model.account_id == account_id)
        if not include_inactive:
            query = query.filter(self.model.is_active.is_(True))
        return query.order_by(self.model.created_at.desc()).all()

    def find_one(self, entry_id: UUID):
        entry = self.db.query(self.model).filter(self.model.id == entry_id).first()
        if entry is None:
            raise NotFoundError(self.resource, entry_id)
        return entry

    def update(self, entry_id: UUID, data: Dict[str, Any]):
        entry = self.find_one(entry_id)
        try:
            for field, value in self._clean(data).items():
                setattr(entry, field, value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return entry

    def remove(self, entry_id: UUID) -> None:
        entry = self.find_one(entry_id)
        self.db.delete(entry)
        self.db.commit()
        logger.info(f"{self.resource} {entry_id} deleted")

    def get_total_for_month(self, account_id: UUID, year: int, month: int) -> float:
        """Sum of active entries in effect at some point of the given month."""
        start_of_month, end_of_month = month_bounds(year, month)
        entries = (
            self.db.query(self.model)
            .filter(
                self.model.account_id == account_id,
                self.model.is_active.is_(True),
                self.model.start_date <= end_of_month,
                or_(self.model.end_date.is_(None), self.model.end_date >= start_of_month),
            )
            .all()
        )
        return sum(entry.amount for entry in entries)

    def get_summary_by_category(self, account_id: UUID) -> List[Dict[str, Any]]:
        summary: Dict[str, Dict[str, Any]] = {}
        for entry in self.find_all(account_id):
            bucket = summary.setdefault(entry.category, {"category": entry.category, "total": 0, "count": 0})
            bucket["total"] += entry.amount
            bucket["count"] += 1
        return list(summary.values())


def expenses_service(db: Session) -> LedgerService:
    return LedgerService(db, Expense)


def taxes_service(db: Session) -> LedgerService:
    return LedgerService(db, Tax)


def extra_revenues_service(db: Session) -> LedgerService:
    return LedgerService(db, ExtraRevenue)
