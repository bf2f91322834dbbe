"""
Question model - pre-sale buyer questions on listings.
"""

from datetime import datetime
import uuid

from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import relationship

from .base import Base


class Question(Base):
    __tablename__ = "questions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    account_id = Column(Uuid(as_uuid=True), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)

    meli_question_id = Column(String(50), nullable=False, unique=True)
    item_id = Column(String(50), nullable=True)  # MercadoLibre item id
    text = Column(Text, nullable=True)
    status = Column(String(30), nullable=True)  # UNANSWERED, ANSWERED, ...
    answer = Column(Text, nullable=True)
    date_created = Column(DateTime(timezone=True), nullable=True)
    date_answered = Column(DateTime(timezone=True), nullable=True)
    from_id = Column(String(50), nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    account = relationship("Account", back_populates="questions")

    __table_args__ = (
        Index("ix_questions_account_status", "account_id", "status"),
    )

    def __repr__(self):
        return f"<Question(meli_question_id='{self.meli_question_id}', status='{self.status}')>"
