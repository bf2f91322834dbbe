"""
Pydantic schemas for API request/response validation.

The dashboard speaks camelCase JSON; every schema derives from CamelModel,
which maps snake_case attributes to camelCase aliases and reads ORM rows
directly.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def dump(schema, obj) -> Optional[Dict[str, Any]]:
    """Serialize an ORM row (or dict) through a schema into camelCase JSON data."""
    if obj is None:
        return None
    return schema.model_validate(obj).model_dump(mode="json", by_alias=True)


def dump_all(schema, rows) -> List[Dict[str, Any]]:
    return [dump(schema, row) for row in rows]


# Accounts

class AccountResponse(CamelModel):
    id: UUID
    seller_id: str
    nickname: Optional[str] = None
    site_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AccountStatusResponse(CamelModel):
    has_tokens: bool
    expiring_soon: bool
    token_type: Optional[str] = None
    scope: Optional[str] = None


# Settings

class SettingsResponse(CamelModel):
    id: UUID
    account_id: UUID
    sync_interval: int
    sync_items: bool
    sync_orders: bool
    sync_questions: bool
    sync_history_days: int
    notifications_enabled: bool
    notify_new_questions: bool
    notify_new_orders: bool
    notify_low_stock: bool
    notify_questions_sla: bool
    theme: str
    language: str
    timezone: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Marketplace records

class ItemResponse(CamelModel):
    id: UUID
    account_id: UUID
    meli_item_id: str
    title: Optional[str] = None
    status: Optional[str] = None
    price: Optional[float] = None
    available: Optional[int] = None
    sold: Optional[int] = None
    thumbnail: Optional[str] = None
    picture: Optional[str] = None
    permalink: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ItemSummary(CamelModel):
    meli_item_id: str
    title: Optional[str] = None
    permalink: Optional[str] = None


class OrderResponse(CamelModel):
    id: UUID
    account_id: UUID
    meli_order_id: str
    status: Optional[str] = None
    total_amount: Optional[float] = None
    date_created: Optional[datetime] = None
    buyer_id: Optional[str] = None
    buyer_nickname: Optional[str] = None
    item_id: Optional[str] = None
    item_title: Optional[str] = None
    item_permalink: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ShipmentResponse(CamelModel):
    id: UUID
    account_id: UUID
    meli_shipment_id: str
    order_id: Optional[str] = None
    mode: Optional[str] = None
    status: Optional[str] = None
    substatus: Optional[str] = None
    tracking_number: Optional[str] = None
    tracking_method: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    shipped_date: Optional[datetime] = None
    delivered_date: Optional[datetime] = None
    receiver_address: Optional[Dict[str, Any]] = None
    sender_address: Optional[Dict[str, Any]] = None
    cost: Optional[float] = None
    sla_status: Optional[str] = None
    sla_service: Optional[str] = None
    sla_expected_date: Optional[datetime] = None
    sla_last_updated: Optional[datetime] = None
    handling_limit: Optional[datetime] = None
    delivery_limit: Optional[datetime] = None
    delivery_final: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class QuestionResponse(CamelModel):
    id: UUID
    account_id: UUID
    meli_question_id: str
    item_id: Optional[str] = None
    text: Optional[str] = None
    status: Optional[str] = None
    answer: Optional[str] = None
    date_created: Optional[datetime] = None
    date_answered: Optional[datetime] = None
    from_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MessageResponse(CamelModel):
    id: UUID
    account_id: UUID
    meli_message_id: str
    pack_id: Optional[str] = None
    order_id: Optional[str] = None
    item_id: Optional[str] = None
    from_id: Optional[str] = None
    to_id: Optional[str] = None
    from_role: Optional[str] = None
    to_role: Optional[str] = None
    text: Optional[str] = None
    status: Optional[str] = None
    date_created: Optional[datetime] = None
    date_read: Optional[datetime] = None
    date_notified: Optional[datetime] = None
    created_at: Optional[datetime] = None


class WebhookEventResponse(CamelModel):
    id: UUID
    event_id: str
    topic: str
    resource: str
    user_id: Optional[str] = None
    attempts: Optional[int] = None
    processed: bool
    processed_at: Optional[datetime] = None
    received_at: Optional[datetime] = None


# Billing

class BillingPeriodResponse(CamelModel):
    id: UUID
    account_id: UUID
    period_key: str
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    expiration_date: Optional[datetime] = None
    period_status: Optional[str] = None
    total_amount: Optional[float] = None
    unpaid_amount: Optional[float] = None
    fees_amount: Optional[float] = None
    tax_amount: Optional[float] = None
    net_amount: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BillingChargeResponse(CamelModel):
    id: UUID
    period_id: UUID
    charge_type: str
    category: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[float] = None
    charge_date: Optional[datetime] = None


# Expenses, taxes, extra revenues

class LedgerEntryResponse(CamelModel):
    id: UUID
    account_id: UUID
    name: str
    category: str
    amount: float
    description: Optional[str] = None
    is_recurring: bool
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LedgerEntryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., min_length=1, max_length=100)
    amount: float
    description: Optional[str] = None
    is_recurring: bool = True
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class LedgerEntryUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    amount: Optional[float] = None
    description: Optional[str] = None
    is_recurring: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: Optional[bool] = None


# Requests

class AnswerRequest(CamelModel):
    answer: Optional[str] = None


class SendMessageRequest(CamelModel):
    pack_id: str
    text: str = Field(..., min_length=1)


class MarkReadRequest(CamelModel):
    message_ids: List[UUID]


class StockUpdateRequest(CamelModel):
    quantity: int = Field(..., ge=0)


class PriceUpdateRequest(CamelModel):
    price: float = Field(..., gt=0)


class BulkStockEntry(CamelModel):
    item_id: str
    quantity: int = Field(..., ge=0)


class BulkStockRequest(CamelModel):
    items: List[BulkStockEntry]


class BulkPriceEntry(CamelModel):
    item_id: str
    price: float = Field(..., gt=0)


class BulkPriceRequest(CamelModel):
    items: List[BulkPriceEntry]


class TitleReplace(BaseModel):
    # Keys are literally "from" and "to"
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(..., alias="from")
    to: str = ""


class DuplicateRequest(CamelModel):
    title_prefix: Optional[str] = None
    title_suffix: Optional[str] = None
    title_replace: Optional[TitleReplace] = None
    quantity: int = Field(1, ge=1, le=50)
    ignore_variations: bool = False
