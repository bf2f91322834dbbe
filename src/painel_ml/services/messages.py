"""
Post-sale buyer messages.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from painel_ml.database.models import Message
from painel_ml.marketplaces.mercadolibre_client import MercadoLibreClient
from painel_ml.services.accounts import AccountsService
from painel_ml.utils.dates import parse_datetime
from painel_ml.utils.exceptions import NotFoundError
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

INBOX_LIMIT = 50

TEST_MESSAGES = [
    ("pack-001", "Olá! Gostaria de saber se o produto está disponível para entrega imediata?", "buyer", "unread"),
    ("pack-001", "Sim, temos em estoque! Podemos enviar hoje mesmo.", "seller", "read"),
    ("pack-002", "Qual o prazo de entrega para o CEP 01310-100?", "buyer", "unread"),
    ("pack-003", "O produto aceita cartão de crédito?", "buyer", "unread"),
    ("pack-003", "Sim, aceitamos todas as formas de pagamento do Mercado Livre.", "seller", "read"),
    ("pack-004", "Vocês fazem entrega no sábado?", "buyer", "unread"),
]


def _as_str(value) -> Optional[str]:
    return str(value) if value is not None else None


class MessagesService:
    def __init__(self, db: Session, client: Optional[MercadoLibreClient] = None):
        self.db = db
        self._client = client

    def client_for(self, account_id: UUID) -> MercadoLibreClient:
        if self._client is None or self._client.account_id != account_id:
            self._client = MercadoLibreClient(self.db, account_id)
        return self._client

    def find_all(self, account_id: UUID, pack_id: Optional[str] = None,
                 order_id: Optional[str] = None, status: Optional[str] = None) -> List[Message]:
        query = self.db.query(Message).filter(Message.account_id == account_id)
        if pack_id:
            query = query.filter(Message.pack_id == pack_id)
        if order_id:
            query = query.filter(Message.order_id == order_id)
        if status:
            query = query.filter(Message.status == status)
        return query.order_by(Message.date_created.desc()).all()

    def find_conversations(self, account_id: UUID) -> List[Dict[str, Any]]:
        """Messages grouped by pack, newest conversation activity first."""
        conversations: Dict[str, Dict[str, Any]] = {}
        for message in self.find_all(account_id):
            key = message.pack_id or "no-pack"
            conversation = conversations.get(key)
            if conversation is None:
                conversation = conversations[key] = {
                    "pack_id": message.pack_id,
                    "order_id": message.order_id,
                    "item_id": message.item_id,
                    "last_message": message.text,
                    "last_message_date": message.date_created,
                    "unread_count": 0,
                    "messages": [],
                }
            conversation["messages"].append(message)
            if message.status == "unread" and message.to_role == "seller":
                conversation["unread_count"] += 1
        return list(conversations.values())

    def find_one(self, message_id: UUID) -> Message:
        message = self.db.query(Message).filter(Message.id == message_id).first()
        if message is None:
            raise NotFoundError("Message", message_id)
        return message

    def sync_messages(self, account_id: UUID) -> Dict[str, Any]:
        """
        Pull the seller inbox and upsert every message of every pack.

        Failures of a single pack are skipped; an inbox failure is reported
        in the result instead of raised.
        """
        try:
            account = AccountsService(self.db).get_account(account_id)
            client = self.client_for(account_id)
            inbox = client.get_message_packs(account.seller_id, limit=INBOX_LIMIT)
            packs = inbox.get("results") or inbox.get("packs") or []

            count = 0
            for pack in packs:
                pack_id = _as_str(pack.get("id"))
                try:
                    pack_data = client.get_pack_messages(pack_id)
                except Exception as e:
                    logger.warning(f"Could not load pack {pack_id}: {e}")
                    continue
                for message_data in pack_data.get("messages") or []:
                    if self.upsert_message(account_id, message_data, pack_id):
                        count += 1
        except Exception as e:
            logger.error(f"Message sync failed for account {account_id}: {e}")
            return {
                "success": False,
                "count": 0,
                "error": str(e),
                "message": "Erro ao sincronizar mensagens. Verifique se a conta tem permissão para acessar mensagens.",
            }

        logger.info(f"{count} messages synced for account {account_id}")
        return {"success": True, "count": count, "message": f"{count} mensagens sincronizadas"}

    def upsert_message(self, account_id: UUID, data: Dict[str, Any], pack_id: Optional[str] = None) -> Optional[Message]:
        """Store one API message. Malformed messages are logged and skipped."""
        try:
            sender = data.get("from") or {}
            receiver = data.get("to") or {}
            values = {
                "pack_id": pack_id or _as_str(data.get("pack_id")),
                "order_id": _as_str(data.get("order_id")),
                "item_id": _as_str(data.get("item_id")),
                "from_id": _as_str(sender.get("user_id")) or "",
                "to_id": _as_str(receiver.get("user_id")) or "",
                "from_role": sender.get("role") or "unknown",
                "to_role": receiver.get("role") or "unknown",
                "text": data.get("text") or "",
                "status": data.get("status") or "unread",
                "date_created": parse_datetime(data.get("date_created")),
                "date_read": parse_datetime(data.get("date_read")),
                "date_notified": parse_datetime(data.get("date_notified")),
            }
            meli_message_id = str(data["id"])

            message = self.db.query(Message).filter(Message.meli_message_id == meli_message_id).first()
            if message is None:
                message = Message(account_id=account_id, meli_message_id=meli_message_id, **values)
                self.db.add(message)
            else:
                for field, value in values.items():
                    setattr(message, field, value)
            self.db.commit()
            return message
        except Exception as e:
            self.db.rollback()
            logger.error(f"Could not store message {data.get('id')}: {e}")
            return None

    def send_message(self, account_id: UUID, pack_id: str, text: str) -> Dict[str, Any]:
        account = AccountsService(self.db).get_account(account_id)
        sent = self.client_for(account_id).send_message(pack_id, account.seller_id, text)
        self.upsert_message(account_id, sent, pack_id)
        return sent

    def mark_as_read(self, account_id: UUID, message_ids: List[UUID]) -> Dict[str, Any]:
        updated = (
            self.db.query(Message)
            .filter(Message.account_id == account_id, Message.id.in_(message_ids))
            .update({"status": "read", "date_read": datetime.utcnow()}, synchronize_session=False)
        )
        self.db.commit()
        return {"success": True, "updated": updated}

    def get_stats(self, account_id: Optional[UUID] = None) -> Dict[str, int]:
        query = self.db.query(Message)
        if account_id:
            query = query.filter(Message.account_id == account_id)
        total = query.count()
        unread = query.filter(Message.status == "unread", Message.to_role == "seller").count()
        return {"total": total, "unread": unread, "read": total - unread}

    def seed_test_data(self, account_id: UUID, buyer_id: str = "123456789") -> Dict[str, Any]:
        """Create sample conversations for local development."""
        account = AccountsService(self.db).get_account(account_id)
        now = datetime.utcnow()
        stamp = int(now.timestamp() * 1000)

        for index, (pack_id, text, from_role, status) in enumerate(TEST_MESSAGES):
            to_role = "seller" if from_role == "buyer" else "buyer"
            self.db.add(Message(
                account_id=account_id,
                meli_message_id=f"test-msg-{stamp}-{index}",
                pack_id=pack_id,
                from_id=buyer_id if from_role == "buyer" else account.seller_id,
                to_id=buyer_id if to_role == "buyer" else account.seller_id,
                from_role=from_role,
                to_role=to_role,
                text=text,
                status=status,
                date_created=now - timedelta(hours=index),
            ))
        self.db.commit()

        count = len(TEST_MESSAGES)
        return {"success": True, "count": count, "message": f"{count} mensagens de teste criadas"}
