"""
Custom exceptions for Painel ML.

Application-specific exception classes for marketplace API failures,
OAuth problems, queue operations, validation and persistence errors.
The API error middleware maps each class to an HTTP status code.
"""

from typing import Optional, Dict, Any


class PainelError(Exception):
    """Base exception for all Painel ML errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize exception with message and optional details.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class AuthenticationError(PainelError):
    """Raised when marketplace credentials are rejected."""
    pass


class OAuthError(PainelError):
    """Raised when the OAuth callback cannot be completed."""
    pass


class APIError(PainelError):
    """Base class for API-related errors."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 response_data: Optional[Dict[str, Any]] = None):
        """
        Initialize API error.

        Args:
            message: Error message
            status_code: HTTP status code
            response_data: API response data
        """
        details = {}
        if status_code:
            details["status_code"] = status_code
        if response_data:
            details["response_data"] = response_data

        super().__init__(message, details)
        self.status_code = status_code
        self.response_data = response_data


class MercadoLibreAPIError(APIError):
    """Raised when MercadoLibre API calls fail."""

    def __init__(self, message: str, endpoint: Optional[str] = None,
                 status_code: Optional[int] = None,
                 response_data: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code, response_data)
        self.endpoint = endpoint

        if endpoint:
            self.details["endpoint"] = endpoint

    def api_message(self) -> str:
        """Best human-readable message from the marketplace error body."""
        data = self.response_data if isinstance(self.response_data, dict) else {}
        if data.get("message"):
            return data["message"]
        if data.get("error"):
            return data["error"]
        causes = self._causes()
        if causes:
            return ", ".join(str(c.get("message") or c.get("code")) for c in causes)
        return self.message

    def api_code(self) -> Optional[str]:
        """Code of the first cause, e.g. ``item.price.not_modifiable``."""
        causes = self._causes()
        return causes[0].get("code") if causes else None

    def _causes(self) -> list:
        data = self.response_data if isinstance(self.response_data, dict) else {}
        causes = data.get("cause") or []
        if not isinstance(causes, list):
            return []
        return [c for c in causes if isinstance(c, dict)]


class TokenRefreshError(AuthenticationError):
    """Raised when an expired access token could not be refreshed."""
    pass


class RateLimitError(APIError):
    """Raised when API rate limits are exceeded."""

    def __init__(self, message: str, retry_after: Optional[int] = None,
                 endpoint: Optional[str] = None):
        details = {}
        if retry_after:
            details["retry_after"] = retry_after
        if endpoint:
            details["endpoint"] = endpoint

        super().__init__(message, 429, details)
        self.retry_after = retry_after
        self.endpoint = endpoint


class ValidationError(PainelError):
    """Raised when data validation fails."""

    def __init__(self, message: str, field: Optional[str] = None,
                 value: Optional[Any] = None, expected_type: Optional[str] = None):
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
            value: Invalid value
            expected_type: Expected data type
        """
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        if expected_type:
            details["expected_type"] = expected_type

        super().__init__(message, details)
        self.field = field
        self.value = value
        self.expected_type = expected_type


class NotFoundError(PainelError):
    """Raised when a requested record does not exist."""

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        details = {"resource": resource}
        if identifier is not None:
            details["id"] = str(identifier)
        super().__init__(message, details)
        self.resource = resource
        self.identifier = identifier


class QueueError(PainelError):
    """Raised when a queue backend operation fails."""

    def __init__(self, message: str, operation: Optional[str] = None):
        details = {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)
        self.operation = operation


def handle_api_error(response, endpoint: Optional[str] = None) -> None:
    """
    Raise the error matching a failed marketplace HTTP response.

    Args:
        response: requests.Response with a non-2xx status
        endpoint: API path that was called

    Raises:
        AuthenticationError, RateLimitError or MercadoLibreAPIError.
    """
    status_code = getattr(response, 'status_code', None)

    try:
        response_data = response.json()
    except ValueError:
        response_data = None

    if status_code in (401, 403):
        raise AuthenticationError(
            "MercadoLibre rejected the credentials" if status_code == 401
            else "MercadoLibre access forbidden - check application scopes",
            {"status_code": status_code, "endpoint": endpoint}
        )
    if status_code == 429:
        retry_after = response.headers.get('Retry-After')
        raise RateLimitError(
            "MercadoLibre rate limit exceeded",
            retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            endpoint=endpoint
        )
    if status_code is not None and status_code >= 500:
        message = f"MercadoLibre server error: {status_code}"
    else:
        message = f"MercadoLibre request failed: {status_code}"
    raise MercadoLibreAPIError(
        message,
        endpoint=endpoint,
        status_code=status_code,
        response_data=response_data if isinstance(response_data, dict) else None
    )
