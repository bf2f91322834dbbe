"""
Settings model - per-account dashboard preferences.
"""

from datetime import datetime
import uuid

from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from .base import Base


DEFAULT_SETTINGS = {
    "sync_interval": 30,
    "sync_items": True,
    "sync_orders": True,
    "sync_questions": True,
    "sync_history_days": 30,
    "notifications_enabled": True,
    "notify_new_questions": True,
    "notify_new_orders": True,
    "notify_low_stock": True,
    "notify_questions_sla": True,
    "theme": "system",
    "language": "pt-BR",
    "timezone": "America/Sao_Paulo",
}


class Settings(Base):
    """One settings row per account."""

    __tablename__ = "settings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    account_id = Column(Uuid(as_uuid=True), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, unique=True)

    # Sync
    sync_interval = Column(Integer, default=30, nullable=False)  # minutes
    sync_items = Column(Boolean, default=True, nullable=False)
    sync_orders = Column(Boolean, default=True, nullable=False)
    sync_questions = Column(Boolean, default=True, nullable=False)
    sync_history_days = Column(Integer, default=30, nullable=False)

    # Notifications
    notifications_enabled = Column(Boolean, default=True, nullable=False)
    notify_new_questions = Column(Boolean, default=True, nullable=False)
    notify_new_orders = Column(Boolean, default=True, nullable=False)
    notify_low_stock = Column(Boolean, default=True, nullable=False)
    notify_questions_sla = Column(Boolean, default=True, nullable=False)

    # Interface
    theme = Column(String(20), default="system", nullable=False)
    language = Column(String(10), default="pt-BR", nullable=False)
    timezone = Column(String(64), default="America/Sao_Paulo", nullable=False)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    account = relationship("Account", back_populates="settings")

    def __repr__(self):
        return f"<Settings(account_id={self.account_id}, theme='{self.theme}')>"
