"""
OpenAPI security evaluation - declared requirements in, ALLOW / DENY out.

Design principles:
1. Requirements are OR-of-AND, evaluated strictly in declared order
2. Verification lives in host handlers, swappable at runtime
3. Exactly one error per denial, in one envelope shape
4. Misconfiguration (500) is never confused with caller fault (401/403)
"""

from oasguard.core import (
    ErrorKind,
    EvaluationOutcome,
    HandlerRegistry,
    NormalizedError,
    RequestContext,
    SchemeRegistry,
    SchemeType,
    SecurityScheme,
)
from oasguard.document import ApiDocument, DocumentError
from oasguard.security import (
    ErrorNormalizer,
    Forbidden,
    HandlerError,
    HttpError,
    RequirementEvaluator,
    ResponseEnvelope,
    Unauthorized,
    is_envelope_error,
)
from oasguard.api import SecurityGuard, create_app

__all__ = [
    # Main interface
    "SecurityGuard",
    "create_app",
    "ApiDocument",
    "RequirementEvaluator",
    "ErrorNormalizer",
    # Types
    "ErrorKind",
    "EvaluationOutcome",
    "HandlerRegistry",
    "NormalizedError",
    "RequestContext",
    "ResponseEnvelope",
    "SchemeRegistry",
    "SchemeType",
    "SecurityScheme",
    # Errors
    "DocumentError",
    "Forbidden",
    "HandlerError",
    "HttpError",
    "Unauthorized",
    "is_envelope_error",
]
