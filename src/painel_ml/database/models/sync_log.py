"""
SyncLog model - history and status of manual account syncs.
"""

from datetime import datetime
import uuid

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship

from .base import Base, JSONType


class SyncLog(Base):
    """
    One row per sync run.

    The latest row of an account is its current sync status.
    """

    __tablename__ = "sync_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    account_id = Column(Uuid(as_uuid=True), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)

    scope = Column(String(20), nullable=False, default="all")  # items, orders, all
    days = Column(Integer, nullable=False, default=30)
    status = Column(String(20), nullable=False, default="running")  # running, completed, failed

    items_processed = Column(Integer, default=0)
    orders_processed = Column(Integer, default=0)
    errors = Column(JSONType, nullable=True)

    started_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    finished_at = Column(DateTime(timezone=True), nullable=True)

    account = relationship("Account", back_populates="sync_logs")

    __table_args__ = (
        Index("ix_sync_logs_account_started", "account_id", "started_at"),
    )

    @property
    def running(self) -> bool:
        return self.status == "running"

    def __repr__(self):
        return f"<SyncLog(id={self.id}, account_id={self.account_id}, status='{self.status}')>"
