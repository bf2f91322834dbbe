"""
Global error handling middleware.
"""

import time
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import SQLAlchemyError

from painel_ml.monitoring.sentry_config import capture_exception
from painel_ml.utils.logger import get_logger
from painel_ml.utils.exceptions import (
    PainelError,
    ValidationError,
    NotFoundError,
    APIError,
    AuthenticationError,
    OAuthError,
)

logger = get_logger(__name__)


def _error(status_code: int, error: str, message: str, details=None) -> JSONResponse:
    content = {"error": error, "message": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Middleware for consistent error handling and logging.
    """

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        try:
            response = await call_next(request)

            duration = time.time() - start_time
            logger.info(
                f"{request.method} {request.url.path} - {response.status_code} - {duration:.3f}s"
            )

            return response

        except ValidationError as e:
            logger.warning(f"Validation error: {e}")
            return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation Error", e.message, e.details)

        except NotFoundError as e:
            logger.info(f"Not found: {e}")
            return _error(status.HTTP_404_NOT_FOUND, "Not Found", e.message, e.details)

        except (AuthenticationError, OAuthError) as e:
            logger.warning(f"Authentication error: {e}")
            return _error(status.HTTP_401_UNAUTHORIZED, "Authentication Error", e.message)

        except APIError as e:
            logger.error(f"API error: {e}")
            status_code = e.status_code if e.status_code and e.status_code >= 400 else status.HTTP_502_BAD_GATEWAY
            return _error(status_code, "API Error", e.message, e.details)

        except SQLAlchemyError as e:
            logger.error(f"Database error: {e}", exc_info=True)
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database Error", "A database error occurred")

        except PainelError as e:
            logger.error(f"Painel error: {e}")
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Error", e.message)

        except Exception as e:
            logger.error(f"Unhandled exception: {e}", exc_info=True)
            capture_exception(e, path=request.url.path, method=request.method)
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error",
                          "An unexpected error occurred")
