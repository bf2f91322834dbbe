"""
Ledger models - manually entered expenses, taxes and extra revenues.

The three tables share the same shape, so the columns live on a mixin.
"""

from datetime import datetime
import uuid

from sqlalchemy import Column, String, Float, Boolean, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import declared_attr, relationship

from .base import Base


class LedgerEntryMixin:
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    @declared_attr
    def account_id(cls):
        return Column(Uuid(as_uuid=True), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False)
    amount = Column(Float, nullable=False)
    description = Column(Text, nullable=True)
    is_recurring = Column(Boolean, default=True, nullable=False)
    start_date = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<{type(self).__name__}(name='{self.name}', category='{self.category}', amount={self.amount})>"


class Expense(LedgerEntryMixin, Base):
    """Fixed or one-off operating expense."""

    __tablename__ = "expenses"

    account = relationship("Account", back_populates="expenses")


class Tax(LedgerEntryMixin, Base):
    """Tax paid outside MercadoLibre billing (e.g. Simples Nacional)."""

    __tablename__ = "taxes"

    account = relationship("Account", back_populates="taxes")


class ExtraRevenue(LedgerEntryMixin, Base):
    """Revenue earned outside marketplace sales."""

    __tablename__ = "extra_revenues"

    account = relationship("Account", back_populates="extra_revenues")
