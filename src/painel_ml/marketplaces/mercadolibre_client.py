"""
MercadoLibre REST API client.

One client is bound to one connected account. Access tokens are loaded
(decrypted) lazily; a 401 triggers a single refresh-and-retry, and the new
token pair is persisted before the retry.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

import requests
from requests.adapters import HTTPAdapter
from sqlalchemy.orm import Session
from urllib3.util.retry import Retry

from painel_ml.marketplaces.oauth import MeliOAuth
from painel_ml.services.accounts import AccountsService, TokenData
from painel_ml.utils.config import MercadoLibreConfig, get_config
from painel_ml.utils.exceptions import (
    AuthenticationError,
    MercadoLibreAPIError,
    handle_api_error,
)
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)


class MercadoLibreClient:
    """Authenticated client for api.mercadolibre.com."""

    def __init__(
        self,
        db: Session,
        account_id: UUID,
        config: Optional[MercadoLibreConfig] = None,
        oauth: Optional[MeliOAuth] = None,
        session: Optional[requests.Session] = None,
    ):
        self.db = db
        self.account_id = account_id
        self.config = config or get_config().meli
        self.oauth = oauth or MeliOAuth(self.config)
        self.accounts = AccountsService(db)
        self._tokens: Optional[TokenData] = None

        if session is None:
            session = requests.Session()
            retry_strategy = Retry(
                total=2,
                backoff_factor=0.5,
                status_forcelist=[500, 502, 503, 504],
                allowed_methods=["HEAD", "GET", "OPTIONS"],
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self.session = session
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": "PainelML/1.0",
        })

    @property
    def tokens(self) -> TokenData:
        if self._tokens is None:
            self._tokens = self.accounts.get_decrypted_tokens(self.account_id)
            if self._tokens is None:
                raise AuthenticationError("token_not_found", {"account_id": str(self.account_id)})
        return self._tokens

    def _refresh_tokens(self) -> None:
        logger.info(f"Access token rejected, refreshing for account {self.account_id}")
        token_data = self.oauth.refresh(self.tokens.refresh_token)
        self.accounts.store_refreshed_tokens(self.account_id, token_data)
        self._tokens = self.accounts.get_decrypted_tokens(self.account_id)

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        headers = dict(kwargs.pop("headers", {}) or {})
        headers["Authorization"] = f"Bearer {self.tokens.access_token}"
        kwargs.setdefault("timeout", self.config.timeout)
        try:
            return self.session.request(method, url, headers=headers, **kwargs)
        except requests.exceptions.Timeout as e:
            raise MercadoLibreAPIError(f"Request timeout after {self.config.timeout}s", endpoint=url) from e
        except requests.exceptions.ConnectionError as e:
            raise MercadoLibreAPIError(f"Connection failed to {url}", endpoint=url) from e
        except requests.exceptions.RequestException as e:
            raise MercadoLibreAPIError(f"Request failed: {e}", endpoint=url) from e

    def request(self, method: str, path: str, **kwargs) -> Any:
        """
        Call the API and return the decoded JSON body.

        Raises:
            AuthenticationError: Credentials rejected even after a refresh.
            MercadoLibreAPIError: Any other failure.
        """
        url = f"{self.config.api_base_url}/{path.lstrip('/')}"
        logger.debug(f"{method} {url}")

        response = self._send(method, url, **kwargs)
        if response.status_code == 401:
            self._refresh_tokens()
            response = self._send(method, url, **kwargs)

        if not response.ok:
            handle_api_error(response, url)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise MercadoLibreAPIError("Invalid JSON in API response", endpoint=url,
                                       status_code=response.status_code) from e

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, payload: Optional[Dict[str, Any]] = None, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("POST", path, json=payload, params=params)

    def put(self, path: str, payload: Dict[str, Any]) -> Any:
        return self.request("PUT", path, json=payload)

    # Items

    def get_user_items(self, seller_id: str, offset: int = 0, limit: int = 50) -> Dict[str, Any]:
        return self.get(f"users/{seller_id}/items/search", {"offset": offset, "limit": limit})

    def get_item(self, item_id: str) -> Dict[str, Any]:
        return self.get(f"items/{item_id}")

    def create_item(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.post("items", data)

    def update_item(self, item_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.put(f"items/{item_id}", data)

    def update_stock(self, item_id: str, quantity: int) -> Dict[str, Any]:
        return self.update_item(item_id, {"available_quantity": quantity})

    def update_price(self, item_id: str, price: float) -> Dict[str, Any]:
        return self.update_item(item_id, {"price": price})

    # Orders

    def search_orders(self, seller_id: str, date_from: Optional[str] = None,
                      offset: int = 0, limit: int = 50) -> Dict[str, Any]:
        params = {"seller": seller_id, "sort": "date_desc", "offset": offset, "limit": limit}
        if date_from:
            params["order.date_created.from"] = date_from
        return self.get("orders/search", params)

    def get_order(self, order_id: str) -> Dict[str, Any]:
        return self.get(f"orders/{order_id}")

    # Shipments

    def get_shipment(self, shipment_id: str) -> Dict[str, Any]:
        return self.get(f"shipments/{shipment_id}")

    def get_shipment_sla(self, shipment_id: str) -> Dict[str, Any]:
        return self.get(f"shipments/{shipment_id}/sla")

    def get_shipment_lead_time(self, shipment_id: str) -> Dict[str, Any]:
        return self.get(f"shipments/{shipment_id}/lead_time")

    # Questions

    def get_question(self, question_id: str) -> Dict[str, Any]:
        return self.get(f"questions/{question_id}")

    def search_questions(self, seller_id: str, offset: int = 0, limit: int = 50) -> Dict[str, Any]:
        return self.get("questions/search", {"seller_id": seller_id, "offset": offset, "limit": limit,
                                             "api_version": 4})

    def answer_question(self, question_id: str, text: str) -> Dict[str, Any]:
        return self.post("answers", {"question_id": int(question_id) if str(question_id).isdigit() else question_id,
                                     "text": text})

    # Messages

    def get_message_packs(self, seller_id: str, limit: int = 50) -> Dict[str, Any]:
        return self.get(f"messages/packs/{seller_id}/inbox", {"limit": limit})

    def get_pack_messages(self, pack_id: str) -> Dict[str, Any]:
        return self.get(f"messages/packs/{pack_id}")

    def send_message(self, pack_id: str, seller_id: str, text: str) -> Dict[str, Any]:
        return self.post(f"messages/packs/{pack_id}/sellers/{seller_id}", {"text": text})

    # Billing

    def get_billing_periods(self) -> Dict[str, Any]:
        return self.get("billing/integration/monthly/periods")

    def get_billing_summary(self, period_key: str) -> Dict[str, Any]:
        return self.get(f"billing/integration/periods/key/{period_key}/summary", {"group": "ML"})


def paged_results(data: Any) -> List[Any]:
    """Extract the ``results`` list of a search response."""
    if isinstance(data, dict):
        results = data.get("results")
        return results if isinstance(results, list) else []
    return []
