# =============================================================================
# Reference Security Handlers
# =============================================================================
#
# Ready-made handlers for common schemes. They are ordinary handlers: the
# host registers them under its scheme names like any other.
#
#   handlers = {
#       "ApiKeyAuth": api_key_handler({"k-123"}),
#       "BasicAuth": basic_auth_handler(check_password),
#       "BearerAuth": jwt_bearer_handler(settings.jwt_secret),
#   }
#
# =============================================================================

from __future__ import annotations

import base64
import binascii
import inspect
import logging
import secrets
from typing import Awaitable, Callable, Iterable, Union

import jwt
from fastapi.security.utils import get_authorization_scheme_param

from oasguard.core.context import RequestContext
from oasguard.core.models import SecurityScheme
from oasguard.security.errors import Forbidden, Unauthorized

logger = logging.getLogger(__name__)


# =============================================================================
# API Keys
# =============================================================================

def api_key_handler(valid_keys: Iterable[str]):
    """Accept requests whose API key is one of ``valid_keys``."""
    keys = tuple(valid_keys)

    def handler(ctx: RequestContext, scopes: list[str], scheme: SecurityScheme) -> bool:
        presented = ctx.credentials.get(scheme.name, "")
        # Compare against every key so timing doesn't reveal a match
        matched = False
        for key in keys:
            if secrets.compare_digest(presented.encode(), key.encode()):
                matched = True
        return matched

    return handler


# =============================================================================
# HTTP Basic
# =============================================================================

PasswordCheck = Callable[[str, str], Union[bool, Awaitable[bool]]]


def decode_basic(value: str) -> tuple[str, str]:
    """
    Split a Basic credential into (username, password).

    Raises:
        Unauthorized: not valid base64 "user:password"
    """
    try:
        decoded = base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        raise Unauthorized("Malformed basic credentials")

    username, sep, password = decoded.partition(":")
    if not sep:
        raise Unauthorized("Malformed basic credentials")
    return username, password


def basic_auth_handler(verify: PasswordCheck):
    """Accept requests whose Basic credentials pass ``verify(user, password)``."""

    async def handler(ctx: RequestContext, scopes: list[str], scheme: SecurityScheme) -> bool:
        username, password = decode_basic(ctx.credentials.get(scheme.name, ""))
        result = verify(username, password)
        if inspect.isawaitable(result):
            result = await result
        if result:
            ctx.state["username"] = username
        return bool(result)

    return handler


# =============================================================================
# JWT Bearer
# =============================================================================

def jwt_bearer_handler(
    secret: str,
    algorithms: list[str] | None = None,
    scopes_claim: str = "scope",
    audience: str | None = None,
):
    """
    Accept requests with a valid JWT bearer token.

    Required scopes (oauth2 / openIdConnect requirements) must all appear
    in ``scopes_claim``, given either as a space-separated string or a list.
    Decoded claims are stored on ``ctx.state["claims"]``.

    Raises (inside the handler):
        Unauthorized: token expired or invalid (401)
        Forbidden: token valid but missing scopes (403)
    """
    algorithms = algorithms or ["HS256"]

    def handler(ctx: RequestContext, scopes: list[str], scheme: SecurityScheme) -> bool:
        token = ctx.credentials.get(scheme.name) or _bearer_from_header(ctx)
        if not token:
            raise Unauthorized("Bearer token required")

        try:
            claims = jwt.decode(
                token,
                secret,
                algorithms=algorithms,
                audience=audience,
                options={"verify_aud": audience is not None},
            )
        except jwt.ExpiredSignatureError:
            raise Unauthorized("Token has expired")
        except jwt.InvalidTokenError as e:
            logger.debug(f"Rejected bearer token for '{scheme.name}': {e}")
            raise Unauthorized("Invalid token")

        granted = _claim_scopes(claims.get(scopes_claim))
        missing = [s for s in scopes if s not in granted]
        if missing:
            raise Forbidden(f"Missing scopes: {' '.join(missing)}")

        ctx.state["claims"] = claims
        return True

    return handler


def _bearer_from_header(ctx: RequestContext) -> str | None:
    # oauth2 / openIdConnect schemes extract nothing themselves
    header = ctx.header("authorization") or ""
    prefix, value = get_authorization_scheme_param(header.strip())
    if prefix.lower() == "bearer" and value.strip():
        return value.strip()
    return None


def _claim_scopes(value) -> set[str]:
    if value is None:
        return set()
    if isinstance(value, str):
        return set(value.split())
    return {str(v) for v in value}
