"""Central error reporting: structured log line + Sentry when a DSN is configured."""

from __future__ import annotations

import logging
from typing import Any, Optional

import sentry_sdk

from core.config import settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_initialized = False


def configure_logging() -> None:
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)


def init_error_reporting() -> None:
    global _initialized
    if _initialized:
        return
    if settings.sentry_dsn:
        sentry_sdk.init(dsn=settings.sentry_dsn, send_default_pii=True)
        logger.info("Sentry error reporting enabled")
    _initialized = True


def report_error(error: BaseException, context: Optional[dict[str, Any]] = None) -> None:
    """Record an exception. Never raises."""
    logger.error("%s: %s | context=%s", type(error).__name__, error, context or {}, exc_info=error)
    with sentry_sdk.new_scope() as scope:
        for key, value in (context or {}).items():
            scope.set_extra(key, value)
        sentry_sdk.capture_exception(error)


def log_info(message: str, context: Optional[dict[str, Any]] = None) -> None:
    logger.info("%s | context=%s", message, context or {})
    with sentry_sdk.new_scope() as scope:
        for key, value in (context or {}).items():
            scope.set_extra(key, value)
        sentry_sdk.capture_message(message, level="info")
