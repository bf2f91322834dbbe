"""
SQLAlchemy database models for Painel ML.

Models:
- Account: Connected MercadoLibre seller
- AccountToken: Encrypted OAuth tokens
- Settings: Per-account dashboard preferences
- Item, Order, Shipment, Question, Message: Synchronized marketplace records
- BillingPeriod, BillingCharge: Monthly billing data
- Expense, Tax, ExtraRevenue: Manually maintained ledger entries
- WebhookEvent: Received webhook notifications
- SyncLog: Manual sync history
"""

from .base import Base
from .account import Account
from .account_token import AccountToken
from .settings import Settings, DEFAULT_SETTINGS
from .item import Item
from .order import Order
from .shipment import Shipment
from .question import Question
from .message import Message
from .billing import BillingPeriod, BillingCharge
from .ledger import Expense, Tax, ExtraRevenue
from .webhook_event import WebhookEvent
from .sync_log import SyncLog

__all__ = [
    "Base",
    "Account",
    "AccountToken",
    "Settings",
    "DEFAULT_SETTINGS",
    "Item",
    "Order",
    "Shipment",
    "Question",
    "Message",
    "BillingPeriod",
    "BillingCharge",
    "Expense",
    "Tax",
    "ExtraRevenue",
    "WebhookEvent",
    "SyncLog",
]
