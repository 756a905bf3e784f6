"""
Error normalization.

Every denied evaluation, and every library-shaped error raised later in
the same request, is turned into one envelope:

    {"message": "...", "errors": [{"message": "...", "path": "..."}]}

An error is "library-shaped" when it carries an integer ``status`` and a
``path`` attribute. The check is structural on purpose: an application
error that happens to carry both is serialized here too, ahead of the
application's own exception handlers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from oasguard.core.models import EvaluationOutcome

logger = logging.getLogger(__name__)

UNAUTHORIZED = "unauthorized"


# =============================================================================
# Exceptions
# =============================================================================


class HttpError(Exception):
    """
    Library error with an HTTP status and the route path it occurred on.

    Routes may raise (subclasses of) this; the guard serializes it as an
    envelope regardless of the application's exception handlers.
    """

    def __init__(
        self,
        status: int,
        message: str,
        path: str = "",
        errors: list[dict[str, str]] | None = None,
        name: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.message = message
        self.path = path
        self.errors = errors
        self.name = name or type(self).__name__


class HandlerError(Exception):
    """
    Raised by security handlers to reject with a specific status.

    Carries ``status`` but no ``path``, so it is never intercepted outside
    of handler dispatch.
    """

    status = 401

    def __init__(self, message: str = UNAUTHORIZED, status: int | None = None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status


class Unauthorized(HandlerError):
    status = 401


class Forbidden(HandlerError):
    status = 403

    def __init__(self, message: str = "forbidden", status: int | None = None):
        super().__init__(message, status)


# =============================================================================
# Envelope
# =============================================================================


class ErrorItem(BaseModel):
    message: str
    path: str


class ErrorBody(BaseModel):
    message: str
    errors: list[ErrorItem] = Field(default_factory=list)


@dataclass
class ResponseEnvelope:
    """HTTP status plus the JSON body of an error response."""

    status_code: int
    body: ErrorBody

    def to_dict(self) -> dict[str, Any]:
        return self.body.model_dump()

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


def is_envelope_error(exc: BaseException) -> bool:
    """Does this error carry the envelope's shape (int status and a path)?"""
    status = getattr(exc, "status", None)
    return isinstance(status, int) and not isinstance(status, bool) and hasattr(exc, "path")


# =============================================================================
# Normalizer
# =============================================================================


class ErrorNormalizer:
    """Builds response envelopes from outcomes and intercepted errors."""

    def normalize(self, outcome: EvaluationOutcome) -> ResponseEnvelope:
        """
        Envelope for a denied outcome.

        Raises:
            ValueError: the outcome is an ALLOW
        """
        if outcome.allowed or outcome.error is None:
            raise ValueError("Cannot build an error envelope for an allowed outcome")

        error = outcome.error
        return ResponseEnvelope(
            status_code=error.status_code,
            body=ErrorBody(
                message=error.message,
                errors=[ErrorItem(message=error.message, path=error.path)],
            ),
        )

    def from_exception(self, exc: BaseException, path: str | None = None) -> ResponseEnvelope:
        """
        Envelope for an error that passed ``is_envelope_error``.

        The error's own ``errors`` list is kept when it has one; otherwise a
        single item is built from its message and path.
        """
        status = getattr(exc, "status")
        error_path = getattr(exc, "path", None) or path or ""
        message = getattr(exc, "message", None)
        if not isinstance(message, str) or not message:
            message = str(exc) or UNAUTHORIZED

        raw_errors = getattr(exc, "errors", None)
        if isinstance(raw_errors, (list, tuple)) and raw_errors:
            items = [
                ErrorItem(
                    message=str(_field(item, "message") or message),
                    path=str(_field(item, "path") or error_path),
                )
                for item in raw_errors
            ]
        else:
            items = [ErrorItem(message=message, path=error_path)]

        logger.warning(
            f"Serializing {type(exc).__name__} as {status} envelope on {error_path}"
        )
        return ResponseEnvelope(
            status_code=status,
            body=ErrorBody(message=message, errors=items),
        )


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)
