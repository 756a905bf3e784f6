"""
Handler dispatch.

Handlers are host code: they may return a value or an awaitable, and may
raise synchronously or while being awaited. ``HandlerDispatcher`` folds
all of that into one ``SchemeOutcome``.
"""

from __future__ import annotations

import inspect
import logging

from oasguard.core.context import RequestContext
from oasguard.core.models import ErrorKind, NormalizedError, SchemeOutcome, SecurityScheme
from oasguard.core.registry import SecurityHandler
from oasguard.security.errors import UNAUTHORIZED

logger = logging.getLogger(__name__)

DEFAULT_STATUS = 401


class HandlerDispatcher:
    """
    Invokes a handler exactly once and normalizes its outcome.

    - a truthy value (returned or awaited) -> success
    - a falsy value -> failure, 401 "unauthorized"
    - raised error -> failure with the error's status and message
    """

    async def dispatch(
        self,
        handler: SecurityHandler,
        ctx: RequestContext,
        scopes: list[str],
        scheme: SecurityScheme,
    ) -> SchemeOutcome:
        try:
            result = handler(ctx, scopes, scheme)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            error = self._error_from_exception(e, ctx, scheme)
            logger.debug(
                f"Handler for '{scheme.name}' raised {type(e).__name__} -> {error.status_code}"
            )
            return SchemeOutcome.failed(error)

        if result:
            return SchemeOutcome.ok()

        logger.debug(f"Handler for '{scheme.name}' returned {type(result).__name__}, denying")
        return SchemeOutcome.failed(
            NormalizedError(
                status_code=DEFAULT_STATUS,
                message=UNAUTHORIZED,
                path=ctx.error_path,
                kind=ErrorKind.HANDLER_REJECTED,
                scheme=scheme.name,
            )
        )

    def _error_from_exception(
        self,
        exc: Exception,
        ctx: RequestContext,
        scheme: SecurityScheme,
    ) -> NormalizedError:
        return NormalizedError(
            status_code=_status_of(exc),
            message=_message_of(exc),
            path=ctx.error_path,
            kind=ErrorKind.HANDLER_REJECTED,
            scheme=scheme.name,
        )


def _status_of(exc: Exception) -> int:
    # `status` first, then Starlette's `status_code`
    for attr in ("status", "status_code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return DEFAULT_STATUS


def _message_of(exc: Exception) -> str:
    # `message` first, then Starlette's `detail`
    for attr in ("message", "detail"):
        value = getattr(exc, attr, None)
        if isinstance(value, str) and value:
            return value
    return str(exc) or UNAUTHORIZED
