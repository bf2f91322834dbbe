"""
Shipment model - fulfillment state and SLA windows of an order.
"""

from datetime import datetime
import uuid

from sqlalchemy import Column, String, Float, DateTime, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship

from .base import Base, JSONType


class Shipment(Base):
    """
    Shipment with its dispatch SLA.

    sla_expected_date is the seller dispatch deadline. handling_limit,
    delivery_limit and delivery_final come from the lead time endpoint.
    """

    __tablename__ = "shipments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    account_id = Column(Uuid(as_uuid=True), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)

    meli_shipment_id = Column(String(50), nullable=False, unique=True)
    order_id = Column(String(50), nullable=True, index=True)  # MercadoLibre order id
    mode = Column(String(30), nullable=True)
    status = Column(String(30), nullable=True)
    substatus = Column(String(50), nullable=True)
    tracking_number = Column(String(100), nullable=True)
    tracking_method = Column(String(100), nullable=True)

    estimated_delivery = Column(DateTime(timezone=True), nullable=True)
    shipped_date = Column(DateTime(timezone=True), nullable=True)
    delivered_date = Column(DateTime(timezone=True), nullable=True)

    receiver_address = Column(JSONType, nullable=True)
    sender_address = Column(JSONType, nullable=True)
    cost = Column(Float, nullable=True)

    # SLA
    sla_status = Column(String(30), nullable=True)
    sla_service = Column(String(50), nullable=True)
    sla_expected_date = Column(DateTime(timezone=True), nullable=True)
    sla_last_updated = Column(DateTime(timezone=True), nullable=True)
    handling_limit = Column(DateTime(timezone=True), nullable=True)
    delivery_limit = Column(DateTime(timezone=True), nullable=True)
    delivery_final = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    account = relationship("Account", back_populates="shipments")

    __table_args__ = (
        Index("ix_shipments_status_sla", "status", "sla_expected_date"),
    )

    def __repr__(self):
        return f"<Shipment(meli_shipment_id='{self.meli_shipment_id}', status='{self.status}')>"
