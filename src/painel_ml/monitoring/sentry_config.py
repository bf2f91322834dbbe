"""
Sentry integration for error tracking.
"""

import logging
from typing import Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.integrations.celery import CeleryIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from painel_ml import __version__
from painel_ml.utils.config import get_config
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)


def setup_sentry(
    dsn: Optional[str] = None,
    environment: Optional[str] = None,
    traces_sample_rate: float = 0.1,
) -> bool:
    """
    Initialize the Sentry SDK.

    Args:
        dsn: Sentry DSN, SENTRY_DSN when omitted
        environment: Deployment environment, ENVIRONMENT when omitted
        traces_sample_rate: Share of transactions to trace (0.0-1.0)

    Returns:
        True when Sentry was initialized.
    """
    config = get_config()
    dsn = dsn or config.sentry_dsn

    if not dsn:
        logger.warning("Sentry DSN not configured, skipping Sentry initialization")
        return False

    environment = environment or config.environment

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=f"painel-ml@{__version__}",
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            CeleryIntegration(monitor_beat_tasks=True),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        traces_sample_rate=traces_sample_rate,
        before_send=before_send_filter,
        attach_stacktrace=True,
        send_default_pii=False,
    )

    logger.info(f"Sentry initialized: environment={environment}")
    return True


def before_send_filter(event, hint):
    """Drop 404 and rate-limit noise; both are already visible in metrics."""
    if "exc_info" in hint:
        exc_type, exc_value, tb = hint["exc_info"]
        text = str(exc_value)
        if "not found" in text.lower() or "429" in text or "rate limit" in text.lower():
            return None
    return event


def capture_exception(exception: Exception, **extra):
    """Send an exception with extra context, e.g. account_id."""
    with sentry_sdk.new_scope() as scope:
        for key, value in extra.items():
            scope.set_extra(key, value)
        sentry_sdk.capture_exception(exception)
