"""
Account and token persistence.

Tokens are encrypted before they reach the database and decrypted only when
an API client needs them.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from painel_ml.database.models import Account, AccountToken
from painel_ml.security.encryption import decrypt_token, encrypt_token
from painel_ml.utils.dates import to_naive_utc
from painel_ml.utils.exceptions import NotFoundError
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

EXPIRY_WARNING_WINDOW = timedelta(hours=1)


@dataclass
class TokenData:
    access_token: str
    refresh_token: Optional[str]
    token_type: Optional[str]
    scope: Optional[str]
    expires_in: Optional[int]
    obtained_at: datetime


class AccountsService:
    def __init__(self, db: Session):
        self.db = db

    def save_account_with_tokens(self, account_data: Dict[str, Any], token_data: Dict[str, Any]) -> Account:
        """
        Upsert the account by seller id and replace its tokens.

        Args:
            account_data: seller_id, nickname, site_id
            token_data: OAuth token response (access_token, refresh_token, ...)
        """
        seller_id = str(account_data["seller_id"])
        account = self.db.query(Account).filter(Account.seller_id == seller_id).first()

        try:
            if account is None:
                account = Account(seller_id=seller_id)
                self.db.add(account)
            if account_data.get("nickname"):
                account.nickname = account_data["nickname"]
            if account_data.get("site_id"):
                account.site_id = account_data["site_id"]
            self.db.flush()

            self._replace_tokens(account, token_data)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(account)
        logger.info(f"Stored account {seller_id} ({account.nickname})")
        return account

    def store_refreshed_tokens(self, account_id: UUID, token_data: Dict[str, Any]) -> None:
        account = self.get_account(account_id)
        current = self._latest_token(account.id)
        if not token_data.get("refresh_token") and current and current.refresh_token_encrypted:
            # MercadoLibre may omit the refresh token when it did not rotate
            token_data = dict(token_data, refresh_token=decrypt_token(current.refresh_token_encrypted))

        try:
            self._replace_tokens(account, token_data)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Refreshed tokens stored for account {account.seller_id}")

    def _replace_tokens(self, account: Account, token_data: Dict[str, Any]) -> AccountToken:
        self.db.query(AccountToken).filter(AccountToken.account_id == account.id).delete(synchronize_session=False)

        refresh_token = token_data.get("refresh_token")
        token = AccountToken(
            account_id=account.id,
            access_token_encrypted=encrypt_token(token_data["access_token"]),
            refresh_token_encrypted=encrypt_token(refresh_token) if refresh_token else None,
            token_type=token_data.get("token_type"),
            scope=token_data.get("scope"),
            expires_in=token_data.get("expires_in"),
            obtained_at=datetime.utcnow(),
        )
        self.db.add(token)
        return token

    def _latest_token(self, account_id: UUID) -> Optional[AccountToken]:
        return (
            self.db.query(AccountToken)
            .filter(AccountToken.account_id == account_id)
            .order_by(AccountToken.obtained_at.desc())
            .first()
        )

    def _to_token_data(self, token: AccountToken) -> TokenData:
        return TokenData(
            access_token=decrypt_token(token.access_token_encrypted),
            refresh_token=decrypt_token(token.refresh_token_encrypted) if token.refresh_token_encrypted else None,
            token_type=token.token_type,
            scope=token.scope,
            expires_in=token.expires_in,
            obtained_at=to_naive_utc(token.obtained_at),
        )

    def get_account(self, account_id: UUID) -> Account:
        account = self.db.query(Account).filter(Account.id == account_id).first()
        if account is None:
            raise NotFoundError("Account", account_id)
        return account

    def get_account_by_seller(self, seller_id) -> Optional[Account]:
        return self.db.query(Account).filter(Account.seller_id == str(seller_id)).first()

    def get_decrypted_tokens(self, account_id: UUID) -> Optional[TokenData]:
        token = self._latest_token(account_id)
        return self._to_token_data(token) if token else None

    def get_token_record_for_seller(self, seller_id) -> Optional[AccountToken]:
        account = self.get_account_by_seller(seller_id)
        if account is None:
            return None
        return self._latest_token(account.id)

    def get_tokens_for_seller(self, seller_id) -> Optional[TokenData]:
        token = self.get_token_record_for_seller(seller_id)
        return self._to_token_data(token) if token else None

    def list_accounts(self) -> List[Account]:
        return self.db.query(Account).order_by(Account.created_at.desc()).all()

    def is_token_expiring_soon(self, seller_id, now: Optional[datetime] = None) -> bool:
        """True when the seller has no token or it expires within the next hour."""
        token = self.get_token_record_for_seller(seller_id)
        if token is None or token.expires_in is None:
            return True
        now = now or datetime.utcnow()
        expires_at = to_naive_utc(token.obtained_at) + timedelta(seconds=token.expires_in)
        return expires_at - now < EXPIRY_WARNING_WINDOW

    def delete_account(self, account_id: UUID) -> None:
        account = self.get_account(account_id)
        try:
            self.db.delete(account)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Account {account.seller_id} removed with all its data")
