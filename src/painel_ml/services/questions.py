"""
Pre-sale question synchronization and answering.
"""

import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from painel_ml.database.models import Item, Question
from painel_ml.marketplaces.mercadolibre_client import MercadoLibreClient
from painel_ml.services.accounts import AccountsService
from painel_ml.utils.dates import parse_datetime
from painel_ml.utils.exceptions import NotFoundError
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

BACKFILL_PAGE_SIZE = 50
BACKFILL_PAGE_DELAY = 0.2
ANSWER_SLA = timedelta(hours=24)


class QuestionsService:
    def __init__(self, db: Session, client: Optional[MercadoLibreClient] = None):
        self.db = db
        self._client = client

    def client_for(self, account_id: UUID) -> MercadoLibreClient:
        if self._client is None or self._client.account_id != account_id:
            self._client = MercadoLibreClient(self.db, account_id)
        return self._client

    def find_all(self, account_id: UUID, status: Optional[str] = None,
                 item_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Questions newest first, each paired with its stored listing (or None)."""
        query = self.db.query(Question).filter(Question.account_id == account_id)
        if status:
            query = query.filter(Question.status == status)
        if item_id:
            query = query.filter(Question.item_id == item_id)
        questions = query.order_by(Question.date_created.desc()).all()

        item_ids = {q.item_id for q in questions if q.item_id}
        items = {}
        if item_ids:
            items = {i.meli_item_id: i for i in
                     self.db.query(Item).filter(Item.meli_item_id.in_(item_ids)).all()}

        return [{"question": q, "item": items.get(q.item_id)} for q in questions]

    def find_one(self, question_id: UUID) -> Question:
        question = self.db.query(Question).filter(Question.id == question_id).first()
        if question is None:
            raise NotFoundError("Question", question_id)
        return question

    def sync_question(self, account_id: UUID, question_id: str) -> Question:
        logger.info(f"Syncing question {question_id} for account {account_id}")
        data = self.client_for(account_id).get_question(question_id)
        answer = data.get("answer") or {}

        answer_values = {
            "status": data.get("status"),
            "answer": answer.get("text"),
            "date_answered": parse_datetime(answer.get("date_created")),
        }

        question = self.db.query(Question).filter(Question.meli_question_id == question_id).first()
        try:
            if question is None:
                sender = data.get("from") or {}
                question = Question(
                    account_id=account_id,
                    meli_question_id=question_id,
                    item_id=data.get("item_id"),
                    text=data.get("text"),
                    date_created=parse_datetime(data.get("date_created")),
                    from_id=str(sender["id"]) if sender.get("id") is not None else None,
                    **answer_values,
                )
                self.db.add(question)
            else:
                # Question text and author never change after creation
                for field, value in answer_values.items():
                    setattr(question, field, value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return question

    def backfill_questions(self, account_id: UUID) -> Dict[str, int]:
        """Page through all seller questions and sync each one."""
        account = AccountsService(self.db).get_account(account_id)
        client = self.client_for(account_id)

        offset = 0
        synced_count = 0
        error_count = 0
        while True:
            try:
                response = client.search_questions(account.seller_id, offset=offset, limit=BACKFILL_PAGE_SIZE)
            except Exception as e:
                logger.error(f"Error fetching questions at offset {offset}: {e}")
                error_count += 1
                break

            page = response.get("questions") or []
            if not page:
                break

            for entry in page:
                try:
                    self.sync_question(account_id, str(entry["id"]))
                    synced_count += 1
                except Exception as e:
                    logger.error(f"Error syncing question {entry.get('id')}: {e}")
                    error_count += 1

            if len(page) < BACKFILL_PAGE_SIZE:
                break
            offset += BACKFILL_PAGE_SIZE
            time.sleep(BACKFILL_PAGE_DELAY)

        logger.info(f"Questions backfill completed: {synced_count} synced, {error_count} errors")
        return {"syncedCount": synced_count, "errorCount": error_count}

    def answer_question(self, account_id: UUID, question_id: str, answer: str) -> Question:
        self.client_for(account_id).answer_question(question_id, answer)

        question = self.db.query(Question).filter(Question.meli_question_id == question_id).first()
        if question is None:
            # Answered a question we had not stored yet
            return self.sync_question(account_id, question_id)

        question.answer = answer
        question.status = "ANSWERED"
        question.date_answered = datetime.utcnow()
        self.db.commit()
        logger.info(f"Question {question_id} answered")
        return question

    def get_stats(self, account_id: Optional[UUID] = None) -> Dict[str, int]:
        query = self.db.query(Question)
        if account_id:
            query = query.filter(Question.account_id == account_id)
        unanswered = query.filter(Question.status == "UNANSWERED")
        return {
            "total": query.count(),
            "unanswered": unanswered.count(),
            "answered": query.filter(Question.status == "ANSWERED").count(),
            "overdueSLA": unanswered.filter(Question.date_created < datetime.utcnow() - ANSWER_SLA).count(),
        }
