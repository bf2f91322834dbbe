"""
Item model - a marketplace listing owned by an account.
"""

from datetime import datetime
import uuid

from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import relationship

from .base import Base


class Item(Base):
    """Listing snapshot refreshed on every item sync."""

    __tablename__ = "items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    account_id = Column(Uuid(as_uuid=True), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)

    meli_item_id = Column(String(50), nullable=False, unique=True)
    title = Column(String(500), nullable=True)
    status = Column(String(30), nullable=True)
    price = Column(Float, nullable=True)
    available = Column(Integer, default=0)
    sold = Column(Integer, default=0)
    thumbnail = Column(Text, nullable=True)
    picture = Column(Text, nullable=True)
    permalink = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    account = relationship("Account", back_populates="items")

    __table_args__ = (
        Index("ix_items_account_status", "account_id", "status"),
    )

    def __repr__(self):
        return f"<Item(meli_item_id='{self.meli_item_id}', status='{self.status}', price={self.price})>"
