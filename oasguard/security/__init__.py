"""
Security evaluation - extraction, scopes, dispatch, combinator, errors.
"""

from oasguard.security.extractor import Credential, CredentialError, CredentialExtractor
from oasguard.security.scopes import ScopeResolver
from oasguard.security.dispatcher import HandlerDispatcher
from oasguard.security.evaluator import RequirementEvaluator
from oasguard.security.errors import (
    ErrorBody,
    ErrorItem,
    ErrorNormalizer,
    Forbidden,
    HandlerError,
    HttpError,
    ResponseEnvelope,
    Unauthorized,
    is_envelope_error,
)

__all__ = [
    "Credential",
    "CredentialError",
    "CredentialExtractor",
    "ScopeResolver",
    "HandlerDispatcher",
    "RequirementEvaluator",
    "ErrorBody",
    "ErrorItem",
    "ErrorNormalizer",
    "Forbidden",
    "HandlerError",
    "HttpError",
    "ResponseEnvelope",
    "Unauthorized",
    "is_envelope_error",
]
