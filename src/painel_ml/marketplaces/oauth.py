"""
MercadoLibre OAuth flow (authorization code with PKCE).

start_auth() builds the authorization URL and keeps the PKCE verifier in
Redis keyed by the state value. handle_callback() validates the state,
exchanges the code for tokens and stores the account.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests
from sqlalchemy.orm import Session

from painel_ml.cache.redis_cache import RedisCache, get_cache
from painel_ml.marketplaces.pkce import generate_challenge, generate_verifier
from painel_ml.services.accounts import AccountsService
from painel_ml.utils.config import MercadoLibreConfig, get_config
from painel_ml.utils.exceptions import OAuthError, TokenRefreshError
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

STATE_NAMESPACE = "oauth_state"
STATE_TTL_SECONDS = 600
TOKEN_TIMEOUT_SECONDS = 10


class MeliOAuth:
    """OAuth helper bound to the configured MercadoLibre application."""

    def __init__(self, config: Optional[MercadoLibreConfig] = None, cache: Optional[RedisCache] = None):
        self.config = config or get_config().meli
        self._cache = cache

    @property
    def cache(self) -> RedisCache:
        if self._cache is None:
            self._cache = get_cache()
        return self._cache

    @property
    def token_url(self) -> str:
        return f"{self.config.api_base_url}/oauth/token"

    def start_auth(self) -> str:
        """Create a pending authorization and return the URL to redirect the seller to."""
        state = str(uuid.uuid4())
        verifier = generate_verifier()

        stored = self.cache.set(
            STATE_NAMESPACE,
            state,
            {"verifier": verifier, "created_at": datetime.utcnow().isoformat()},
            ttl=STATE_TTL_SECONDS,
        )
        if not stored:
            raise OAuthError("state_store_unavailable")

        params = {
            "response_type": "code",
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_uri,
            "state": state,
            "code_challenge": generate_challenge(verifier),
            "code_challenge_method": "S256",
        }
        logger.info(f"OAuth flow started (state={state})")
        return f"{self.config.auth_url}?{urlencode(params)}"

    def handle_callback(self, db: Session, code: Optional[str], state: Optional[str]) -> Dict[str, Any]:
        """
        Complete the authorization.

        Raises:
            OAuthError: invalid_oauth_callback, invalid_state or token_exchange_failed.
        """
        if not code or not state:
            raise OAuthError("invalid_oauth_callback")

        entry = self.cache.pop(STATE_NAMESPACE, state)
        if not entry:
            raise OAuthError("invalid_state", {"state": state})

        token_data = self._post_token({
            "grant_type": "authorization_code",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "code": code,
            "redirect_uri": self.config.redirect_uri,
            "code_verifier": entry.get("verifier"),
        }, error="token_exchange_failed")

        profile = self._fetch_profile(token_data["access_token"])

        account = AccountsService(db).save_account_with_tokens(
            {
                "seller_id": str(token_data.get("user_id") or profile.get("id")),
                "nickname": profile.get("nickname"),
                "site_id": profile.get("site_id"),
            },
            token_data,
        )
        logger.info(f"OAuth completed for seller {account.seller_id}")
        return {"account_id": str(account.id), "seller_id": account.seller_id}

    def refresh(self, refresh_token: str) -> Dict[str, Any]:
        """Exchange a refresh token for a new token pair."""
        if not refresh_token:
            raise TokenRefreshError("No refresh token stored for account")
        try:
            return self._post_token({
                "grant_type": "refresh_token",
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "refresh_token": refresh_token,
            }, error="token_refresh_failed")
        except OAuthError as e:
            raise TokenRefreshError(e.message, e.details) from e

    def _post_token(self, form: Dict[str, Any], error: str) -> Dict[str, Any]:
        try:
            response = requests.post(
                self.token_url,
                data=form,
                headers={"Accept": "application/json"},
                timeout=TOKEN_TIMEOUT_SECONDS,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Token request failed: {e}")
            raise OAuthError(error, {"reason": str(e)}) from e

        if not response.ok:
            logger.error(f"Token endpoint returned {response.status_code}")
            raise OAuthError(error, {"status_code": response.status_code})

        data = response.json()
        if not data.get("access_token"):
            raise OAuthError(error, {"reason": "missing access_token"})
        return data

    def _fetch_profile(self, access_token: str) -> Dict[str, Any]:
        try:
            response = requests.get(
                f"{self.config.api_base_url}/users/me",
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=TOKEN_TIMEOUT_SECONDS,
            )
            if response.ok:
                return response.json()
            logger.warning(f"users/me returned {response.status_code}")
        except requests.exceptions.RequestException as e:
            logger.warning(f"Could not load seller profile: {e}")
        return {}
