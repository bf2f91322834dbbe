"""
Order model - a sale received by an account.
"""

from datetime import datetime
import uuid

from sqlalchemy import Column, String, Float, DateTime, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import relationship

from .base import Base


class Order(Base):
    """Order header with the first order item denormalized."""

    __tablename__ = "orders"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    account_id = Column(Uuid(as_uuid=True), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)

    meli_order_id = Column(String(50), nullable=False, unique=True)
    status = Column(String(30), nullable=True)
    total_amount = Column(Float, nullable=True)
    date_created = Column(DateTime(timezone=True), nullable=True)

    buyer_id = Column(String(50), nullable=True)
    buyer_nickname = Column(String(255), nullable=True)

    item_id = Column(String(50), nullable=True)
    item_title = Column(String(500), nullable=True)
    item_permalink = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    account = relationship("Account", back_populates="orders")

    __table_args__ = (
        Index("ix_orders_account_date", "account_id", "date_created"),
    )

    def __repr__(self):
        return f"<Order(meli_order_id='{self.meli_order_id}', status='{self.status}', total={self.total_amount})>"
