"""
Account model - a MercadoLibre seller connected through OAuth.
"""

from datetime import datetime
import uuid

from sqlalchemy import Column, String, DateTime, Uuid
from sqlalchemy.orm import relationship

from .base import Base


class Account(Base):
    """
    Connected seller account.

    Every synchronized record belongs to exactly one account and is removed
    together with it.
    """

    __tablename__ = "accounts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    seller_id = Column(String(50), nullable=False, unique=True, index=True)
    nickname = Column(String(255), nullable=True)
    site_id = Column(String(10), nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    tokens = relationship("AccountToken", back_populates="account", cascade="all, delete-orphan")
    settings = relationship("Settings", back_populates="account", uselist=False, cascade="all, delete-orphan")
    items = relationship("Item", back_populates="account", cascade="all, delete-orphan")
    orders = relationship("Order", back_populates="account", cascade="all, delete-orphan")
    shipments = relationship("Shipment", back_populates="account", cascade="all, delete-orphan")
    questions = relationship("Question", back_populates="account", cascade="all, delete-orphan")
    messages = relationship("Message", back_populates="account", cascade="all, delete-orphan")
    billing_periods = relationship("BillingPeriod", back_populates="account", cascade="all, delete-orphan")
    expenses = relationship("Expense", back_populates="account", cascade="all, delete-orphan")
    taxes = relationship("Tax", back_populates="account", cascade="all, delete-orphan")
    extra_revenues = relationship("ExtraRevenue", back_populates="account", cascade="all, delete-orphan")
    sync_logs = relationship("SyncLog", back_populates="account", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Account(id={self.id}, seller_id='{self.seller_id}', nickname='{self.nickname}')>"
