"""
AccountToken model - encrypted OAuth tokens for an account.
"""

from datetime import datetime
import uuid

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from .base import Base


class AccountToken(Base):
    """OAuth token pair, both tokens encrypted with Fernet."""

    __tablename__ = "account_tokens"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    account_id = Column(Uuid(as_uuid=True), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)

    access_token_encrypted = Column(Text, nullable=False)
    refresh_token_encrypted = Column(Text, nullable=True)
    token_type = Column(String(50), nullable=True)
    scope = Column(Text, nullable=True)
    expires_in = Column(Integer, nullable=True)  # seconds
    obtained_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    account = relationship("Account", back_populates="tokens")

    def __repr__(self):
        return f"<AccountToken(id={self.id}, account_id={self.account_id}, expires_in={self.expires_in})>"
