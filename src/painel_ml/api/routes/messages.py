"""
Post-sale messages.
"""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from painel_ml.api.dependencies import optional_account_id, require_account_id
from painel_ml.api.schemas import MarkReadRequest, MessageResponse, SendMessageRequest, dump, dump_all
from painel_ml.database.connection import get_db
from painel_ml.services.messages import MessagesService
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("")
def list_messages(
    account_id: UUID = Depends(require_account_id),
    pack_id: Optional[str] = Query(None, alias="packId"),
    order_id: Optional[str] = Query(None, alias="orderId"),
    message_status: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
):
    messages = MessagesService(db).find_all(account_id, pack_id=pack_id, order_id=order_id,
                                            status=message_status)
    return dump_all(MessageResponse, messages)


@router.get("/conversations")
def list_conversations(
    account_id: UUID = Depends(require_account_id),
    db: Session = Depends(get_db),
):
    conversations = []
    for conversation in MessagesService(db).find_conversations(account_id):
        last_date = conversation["last_message_date"]
        conversations.append({
            "packId": conversation["pack_id"],
            "orderId": conversation["order_id"],
            "itemId": conversation["item_id"],
            "lastMessage": conversation["last_message"],
            "lastMessageDate": last_date.isoformat() if last_date else None,
            "unreadCount": conversation["unread_count"],
            "messages": dump_all(MessageResponse, conversation["messages"]),
        })
    return conversations


@router.get("/stats")
def message_stats(
    account_id: Optional[UUID] = Depends(optional_account_id),
    db: Session = Depends(get_db),
) -> Dict[str, int]:
    return MessagesService(db).get_stats(account_id)


@router.post("/sync")
def sync_messages(
    account_id: UUID = Depends(require_account_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return MessagesService(db).sync_messages(account_id)


@router.post("/send")
def send_message(
    request: SendMessageRequest,
    account_id: UUID = Depends(require_account_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return MessagesService(db).send_message(account_id, request.pack_id, request.text)


@router.put("/read")
@router.post("/mark-read")
def mark_as_read(
    request: MarkReadRequest,
    account_id: UUID = Depends(require_account_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return MessagesService(db).mark_as_read(account_id, request.message_ids)


@router.post("/seed-test-data")
def seed_test_data(
    account_id: UUID = Depends(require_account_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return MessagesService(db).seed_test_data(account_id)


@router.get("/{message_id}")
def get_message(message_id: UUID, db: Session = Depends(get_db)):
    return dump(MessageResponse, MessagesService(db).find_one(message_id))
