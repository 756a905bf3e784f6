"""
FastAPI application factory.

Builds an app whose routes are guarded by the document's security
declarations. Routes are added by the host after creation.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, MutableMapping

from fastapi import FastAPI

from oasguard.api.guard import SecurityGuard
from oasguard.config import Settings, configure_logging, get_settings
from oasguard.core.registry import HandlerRegistry, SecurityHandler
from oasguard.document import ApiDocument

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log guard state at startup and shutdown."""
    guard: SecurityGuard = app.state.security_guard
    settings = guard.settings

    if not settings.validate_security:
        logger.warning("Security validation is disabled")
    elif guard.handlers.credentials_only:
        logger.info("No security handlers configured, checking credential presence only")

    logger.info(
        f"Guarding {len(guard.document.schemes)} security schemes "
        f"in {settings.environment} mode"
    )

    yield

    logger.info("Security guard shutting down")


def create_app(
    document: ApiDocument | None = None,
    handlers: MutableMapping[str, SecurityHandler] | HandlerRegistry | None = None,
    settings: Settings | None = None,
    **kwargs: Any,
) -> FastAPI:
    """
    Create a FastAPI app wired with a ``SecurityGuard``.

    Args:
        document: Parsed API document; loaded from ``settings.api_spec_path``
            when omitted
        handlers: Host handler mapping (kept by reference), or None for
            credentials-only checking
        settings: Overrides the environment settings
        **kwargs: Passed through to ``FastAPI``

    Returns:
        The app; the guard is available as ``app.state.security_guard``
    """
    settings = settings or get_settings()
    configure_logging(settings)

    if document is None:
        if not settings.api_spec_path:
            raise ValueError("No API document given and OASGUARD_API_SPEC_PATH is not set")
        document = ApiDocument.from_file(settings.api_spec_path, base_path=settings.base_path)

    kwargs.setdefault("debug", settings.debug)
    app = FastAPI(lifespan=lifespan, **kwargs)

    guard = SecurityGuard(document, handlers, settings)
    guard.install(app)

    return app
