"""
WebhookEvent model - notifications received from MercadoLibre.
"""

from datetime import datetime
import uuid

from sqlalchemy import Column, String, Integer, Boolean, DateTime, Index, Text, Uuid

from .base import Base, JSONType


class WebhookEvent(Base):
    """
    Raw webhook notification.

    Stored on receipt and marked processed by the queue worker once the
    referenced resource has been synchronized.
    """

    __tablename__ = "webhook_events"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    event_id = Column(String(100), nullable=False, unique=True)
    topic = Column(String(50), nullable=False)
    resource = Column(Text, nullable=False)
    user_id = Column(String(50), nullable=True, index=True)
    application_id = Column(String(50), nullable=True)
    attempts = Column(Integer, default=1)
    payload = Column(JSONType, nullable=True)

    processed = Column(Boolean, default=False, nullable=False)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    received_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_webhook_events_pending", "processed", "received_at"),
    )

    def __repr__(self):
        return f"<WebhookEvent(event_id='{self.event_id}', topic='{self.topic}', processed={self.processed})>"
