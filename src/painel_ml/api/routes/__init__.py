"""
API route modules.
"""

from . import (
    accounts,
    billing,
    health,
    items,
    items_management,
    ledger,
    messages,
    oauth,
    orders,
    questions,
    settings,
    shipments,
    sync,
    webhooks,
)

__all__ = [
    "accounts",
    "billing",
    "health",
    "items",
    "items_management",
    "ledger",
    "messages",
    "oauth",
    "orders",
    "questions",
    "settings",
    "shipments",
    "sync",
    "webhooks",
]
