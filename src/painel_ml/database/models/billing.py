"""
Billing models - monthly MercadoLibre billing periods and their charges.
"""

from datetime import datetime
import uuid

from sqlalchemy import Column, String, Float, DateTime, ForeignKey, Index, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from .base import Base, JSONType


class BillingPeriod(Base):
    """Monthly billing period with totals derived from its summary."""

    __tablename__ = "billing_periods"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    account_id = Column(Uuid(as_uuid=True), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)

    period_key = Column(String(30), nullable=False)
    date_from = Column(DateTime(timezone=True), nullable=True)
    date_to = Column(DateTime(timezone=True), nullable=True)
    expiration_date = Column(DateTime(timezone=True), nullable=True)
    period_status = Column(String(20), default="CLOSED")

    total_amount = Column(Float, default=0)
    unpaid_amount = Column(Float, default=0)
    fees_amount = Column(Float, default=0)
    tax_amount = Column(Float, default=0)
    net_amount = Column(Float, default=0)
    raw_data = Column(JSONType, nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    account = relationship("Account", back_populates="billing_periods")
    charges = relationship("BillingCharge", back_populates="period", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("account_id", "period_key", name="uq_billing_periods_account_key"),
        Index("ix_billing_periods_account_from", "account_id", "date_from"),
    )

    def __repr__(self):
        return f"<BillingPeriod(period_key='{self.period_key}', total={self.total_amount}, net={self.net_amount})>"


class BillingCharge(Base):
    """Individual charge, tax or bonus line of a billing period."""

    __tablename__ = "billing_charges"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    period_id = Column(Uuid(as_uuid=True), ForeignKey("billing_periods.id", ondelete="CASCADE"), nullable=False, index=True)
    account_id = Column(Uuid(as_uuid=True), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)

    charge_type = Column(String(20), nullable=False)  # TAX, FEE_ML, BONUS
    category = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    amount = Column(Float, default=0)
    charge_date = Column(DateTime(timezone=True), nullable=True)
    raw_data = Column(JSONType, nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    period = relationship("BillingPeriod", back_populates="charges")

    def __repr__(self):
        return f"<BillingCharge(type='{self.charge_type}', amount={self.amount})>"
