"""
Buyer questions.
"""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from painel_ml.api.dependencies import optional_account_id, require_account_id
from painel_ml.api.schemas import AnswerRequest, ItemSummary, QuestionResponse, dump
from painel_ml.database.connection import get_db
from painel_ml.services.questions import QuestionsService
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("")
def list_questions(
    account_id: UUID = Depends(require_account_id),
    question_status: Optional[str] = Query(None, alias="status"),
    item_id: Optional[str] = Query(None, alias="itemId"),
    db: Session = Depends(get_db),
):
    questions = []
    for entry in QuestionsService(db).find_all(account_id, status=question_status, item_id=item_id):
        question = dump(QuestionResponse, entry["question"])
        question["item"] = dump(ItemSummary, entry["item"])
        questions.append(question)
    return questions


@router.get("/stats")
def question_stats(
    account_id: Optional[UUID] = Depends(optional_account_id),
    db: Session = Depends(get_db),
) -> Dict[str, int]:
    return QuestionsService(db).get_stats(account_id)


@router.post("/backfill")
def backfill_questions(
    account_id: UUID = Depends(require_account_id),
    db: Session = Depends(get_db),
) -> Dict[str, int]:
    return QuestionsService(db).backfill_questions(account_id)


@router.post("/sync/{question_id}")
def sync_question(
    question_id: str,
    account_id: UUID = Depends(require_account_id),
    db: Session = Depends(get_db),
):
    return dump(QuestionResponse, QuestionsService(db).sync_question(account_id, question_id))


@router.get("/{question_id}")
def get_question(question_id: UUID, db: Session = Depends(get_db)):
    return dump(QuestionResponse, QuestionsService(db).find_one(question_id))


@router.post("/{question_id}/answer")
def answer_question(
    question_id: str,
    request: Optional[AnswerRequest] = Body(None),
    account_id: UUID = Depends(require_account_id),
    db: Session = Depends(get_db),
):
    answer = (request.answer or "").strip() if request else ""
    if not answer:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="answer is required")

    question = QuestionsService(db).answer_question(account_id, question_id, answer)
    return dump(QuestionResponse, question)
