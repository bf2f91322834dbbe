"""
Unit tests for PKCE and the OAuth flow
"""
import base64
import hashlib
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlparse

import pytest

from painel_ml.database.models import Account, AccountToken
from painel_ml.marketplaces.oauth import STATE_NAMESPACE, MeliOAuth
from painel_ml.marketplaces.pkce import generate_challenge, generate_verifier
from painel_ml.security.encryption import decrypt_token
from painel_ml.utils.config import MercadoLibreConfig
from painel_ml.utils.exceptions import OAuthError, TokenRefreshError


@pytest.fixture
def meli_config():
    return MercadoLibreConfig(
        client_id="app-123",
        client_secret="secret",
        redirect_uri="http://localhost:4000/meli/oauth/callback",
        api_base_url="https://api.mercadolibre.com",
        auth_url="https://auth.mercadolivre.com.br/authorization",
        timeout=10,
    )


@pytest.fixture
def oauth(meli_config, fake_cache):
    return MeliOAuth(config=meli_config, cache=fake_cache)


def _response(status_code=200, json_data=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.json.return_value = json_data or {}
    return response


class TestPKCE:
    def test_verifier_is_url_safe_without_padding(self):
        verifier = generate_verifier()
        assert "=" not in verifier
        assert "+" not in verifier and "/" not in verifier
        assert 43 <= len(verifier) <= 128

    def test_verifiers_are_random(self):
        assert generate_verifier() != generate_verifier()

    def test_challenge_is_s256(self):
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        digest = hashlib.sha256(verifier.encode()).digest()
        expected = base64.urlsafe_b64encode(digest).rstrip(b"=").decode()

        assert generate_challenge(verifier) == expected
        assert generate_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


class TestStartAuth:
    def test_builds_authorization_url_and_stores_verifier(self, oauth, fake_cache):
        url = oauth.start_auth()

        parsed = urlparse(url)
        params = {k: v[0] for k, v in parse_qs(parsed.query).items()}
        assert url.startswith("https://auth.mercadolivre.com.br/authorization?")
        assert params["response_type"] == "code"
        assert params["client_id"] == "app-123"
        assert params["code_challenge_method"] == "S256"

        stored = fake_cache.store[(STATE_NAMESPACE, params["state"])]
        assert generate_challenge(stored["verifier"]) == params["code_challenge"]

    def test_state_store_unavailable(self, oauth, fake_cache):
        fake_cache.set.side_effect = None
        fake_cache.set.return_value = False

        with pytest.raises(OAuthError):
            oauth.start_auth()


class TestHandleCallback:
    def test_missing_code_or_state(self, oauth, db_session):
        with pytest.raises(OAuthError) as exc_info:
            oauth.handle_callback(db_session, None, "state")
        assert exc_info.value.message == "invalid_oauth_callback"

    def test_unknown_state(self, oauth, db_session):
        with pytest.raises(OAuthError) as exc_info:
            oauth.handle_callback(db_session, "code", "never-issued")
        assert exc_info.value.message == "invalid_state"

    @patch("painel_ml.marketplaces.oauth.requests.get")
    @patch("painel_ml.marketplaces.oauth.requests.post")
    def test_exchanges_code_and_stores_account(self, mock_post, mock_get, oauth, fake_cache, db_session):
        fake_cache.store[(STATE_NAMESPACE, "st-1")] = {"verifier": "verifier-1"}
        mock_post.return_value = _response(200, {
            "access_token": "APP_USR-new",
            "refresh_token": "TG-new",
            "token_type": "Bearer",
            "scope": "offline_access",
            "expires_in": 21600,
            "user_id": 555,
        })
        mock_get.return_value = _response(200, {"id": 555, "nickname": "NOVA_LOJA", "site_id": "MLB"})

        result = oauth.handle_callback(db_session, "code-1", "st-1")

        form = mock_post.call_args.kwargs["data"]
        assert form["grant_type"] == "authorization_code"
        assert form["code"] == "code-1"
        assert form["code_verifier"] == "verifier-1"
        assert mock_post.call_args.kwargs["timeout"] == 10

        account = db_session.query(Account).filter(Account.seller_id == "555").one()
        assert result == {"account_id": str(account.id), "seller_id": "555"}
        assert account.nickname == "NOVA_LOJA"

        token = db_session.query(AccountToken).filter(AccountToken.account_id == account.id).one()
        assert token.access_token_encrypted != "APP_USR-new"
        assert decrypt_token(token.access_token_encrypted) == "APP_USR-new"

        # State is single use
        assert (STATE_NAMESPACE, "st-1") not in fake_cache.store

    @patch("painel_ml.marketplaces.oauth.requests.post")
    def test_token_exchange_failure(self, mock_post, oauth, fake_cache, db_session):
        fake_cache.store[(STATE_NAMESPACE, "st-2")] = {"verifier": "v"}
        mock_post.return_value = _response(400, {"error": "invalid_grant"})

        with pytest.raises(OAuthError) as exc_info:
            oauth.handle_callback(db_session, "bad-code", "st-2")

        assert exc_info.value.message == "token_exchange_failed"
        assert db_session.query(Account).count() == 0


class TestRefresh:
    @patch("painel_ml.marketplaces.oauth.requests.post")
    def test_refresh_posts_refresh_grant(self, mock_post, oauth):
        mock_post.return_value = _response(200, {"access_token": "A2", "refresh_token": "R2"})

        data = oauth.refresh("R1")

        assert data["access_token"] == "A2"
        form = mock_post.call_args.kwargs["data"]
        assert form["grant_type"] == "refresh_token"
        assert form["refresh_token"] == "R1"

    def test_refresh_without_token(self, oauth):
        with pytest.raises(TokenRefreshError):
            oauth.refresh(None)

    @patch("painel_ml.marketplaces.oauth.requests.post")
    def test_refresh_failure(self, mock_post, oauth):
        mock_post.return_value = _response(401)
        with pytest.raises(TokenRefreshError):
            oauth.refresh("R1")
