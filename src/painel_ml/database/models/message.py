"""
Message model - post-sale conversation messages grouped by pack.
"""

from datetime import datetime
import uuid

from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import relationship

from .base import Base


class Message(Base):
    __tablename__ = "messages"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    account_id = Column(Uuid(as_uuid=True), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)

    meli_message_id = Column(String(100), nullable=False, unique=True)
    pack_id = Column(String(50), nullable=True, index=True)
    order_id = Column(String(50), nullable=True)
    item_id = Column(String(50), nullable=True)

    from_id = Column(String(50), nullable=True)
    to_id = Column(String(50), nullable=True)
    from_role = Column(String(20), nullable=True)  # buyer / seller
    to_role = Column(String(20), nullable=True)

    text = Column(Text, nullable=True)
    status = Column(String(20), nullable=True)  # unread / read
    date_created = Column(DateTime(timezone=True), nullable=True)
    date_read = Column(DateTime(timezone=True), nullable=True)
    date_notified = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    account = relationship("Account", back_populates="messages")

    __table_args__ = (
        Index("ix_messages_account_pack", "account_id", "pack_id"),
    )

    def __repr__(self):
        return f"<Message(meli_message_id='{self.meli_message_id}', pack_id='{self.pack_id}', status='{self.status}')>"
