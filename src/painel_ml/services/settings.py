"""
Per-account dashboard settings.
"""

from typing import Any, Dict
from uuid import UUID

from pydantic.alias_generators import to_snake
from sqlalchemy.orm import Session

from painel_ml.database.models import DEFAULT_SETTINGS, Settings
from painel_ml.services.accounts import AccountsService
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

PROTECTED_FIELDS = {"id", "account_id", "created_at", "updated_at"}


class SettingsService:
    def __init__(self, db: Session):
        self.db = db

    def get_settings(self, account_id: UUID) -> Settings:
        """Return the account settings, creating them with defaults on first access."""
        settings = self.db.query(Settings).filter(Settings.account_id == account_id).first()
        if settings is None:
            AccountsService(self.db).get_account(account_id)
            settings = Settings(account_id=account_id, **DEFAULT_SETTINGS)
            try:
                self.db.add(settings)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
            self.db.refresh(settings)
            logger.info(f"Default settings created for account {account_id}")
        return settings

    def update_settings(self, account_id: UUID, data: Dict[str, Any]) -> Settings:
        """
        Upsert settings from a partial payload.

        Keys may be camelCase or snake_case. Identity and timestamp fields
        are ignored, as are unknown keys.
        """
        values = {}
        for key, value in (data or {}).items():
            field = to_snake(key)
            if field in PROTECTED_FIELDS or field not in DEFAULT_SETTINGS:
                continue
            values[field] = value

        return self._upsert(account_id, values)

    def reset_settings(self, account_id: UUID) -> Settings:
        logger.info(f"Resetting settings for account {account_id}")
        return self._upsert(account_id, dict(DEFAULT_SETTINGS))

    def _upsert(self, account_id: UUID, values: Dict[str, Any]) -> Settings:
        settings = self.db.query(Settings).filter(Settings.account_id == account_id).first()
        if settings is None:
            AccountsService(self.db).get_account(account_id)
        try:
            if settings is None:
                settings = Settings(account_id=account_id, **dict(DEFAULT_SETTINGS, **values))
                self.db.add(settings)
            else:
                for field, value in values.items():
                    setattr(settings, field, value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(settings)
        return settings
