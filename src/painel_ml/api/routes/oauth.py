"""
MercadoLibre OAuth endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.orm import Session

from painel_ml.database.connection import get_db
from painel_ml.marketplaces.oauth import MeliOAuth
from painel_ml.utils.config import get_config
from painel_ml.utils.exceptions import OAuthError
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def get_oauth() -> MeliOAuth:
    return MeliOAuth()


@router.get("/start")
def start(oauth: MeliOAuth = Depends(get_oauth)):
    """Redirect the seller to the MercadoLibre authorization page."""
    try:
        url = oauth.start_auth()
    except OAuthError as e:
        logger.error(f"Could not start OAuth flow: {e}")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST,
                            content={"error": "OAuth Error", "message": e.message})
    return RedirectResponse(url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@router.get("/callback")
def callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    oauth: MeliOAuth = Depends(get_oauth),
    db: Session = Depends(get_db),
):
    try:
        oauth.handle_callback(db, code, state)
    except OAuthError as e:
        logger.warning(f"OAuth callback rejected: {e.message}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "OAuth Error", "message": e.message, "details": e.details or None},
        )

    frontend = get_config().frontend_base_url.rstrip("/")
    return RedirectResponse(f"{frontend}/connected", status_code=status.HTTP_307_TEMPORARY_REDIRECT)
