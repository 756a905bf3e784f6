"""
Credential extraction.

Checks that the credential a scheme needs is present and well formed
before any handler sees the request. Only presence and shape are checked
here; verifying the credential is the handler's job.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi.security.utils import get_authorization_scheme_param

from oasguard.core.context import RequestContext
from oasguard.core.models import ApiKeyLocation, ErrorKind, SchemeType, SecurityScheme


class CredentialError(Exception):
    """A required credential is absent or malformed."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.CREDENTIAL_MISSING):
        super().__init__(message)
        self.message = message
        self.kind = kind


@dataclass(frozen=True)
class Credential:
    """Raw credential material located for one scheme."""

    scheme_name: str
    value: str | None = None  # None for schemes with nothing to extract


class CredentialExtractor:
    """
    Locates credential material for a scheme.

    apiKey reads the declared header, query parameter or cookie. http reads
    the Authorization header and checks its auth-scheme prefix. oauth2 and
    openIdConnect carry nothing checkable here; their handlers decide.
    """

    def extract(self, scheme: SecurityScheme, ctx: RequestContext) -> Credential:
        """
        Return the scheme's credential.

        Raises:
            CredentialError: credential absent or malformed
        """
        if scheme.type == SchemeType.API_KEY:
            value = self._api_key(scheme, ctx)
        elif scheme.type == SchemeType.HTTP:
            value = self._http(scheme, ctx)
        else:
            value = None
        return Credential(scheme_name=scheme.name, value=value)

    def _api_key(self, scheme: SecurityScheme, ctx: RequestContext) -> str:
        name = scheme.parameter_name or ""

        if scheme.location == ApiKeyLocation.HEADER:
            value = ctx.header(name)
            if not value:
                raise CredentialError(f"'{name}' header required")
        elif scheme.location == ApiKeyLocation.QUERY:
            value = ctx.query.get(name)
            if not value:
                raise CredentialError(f"query parameter '{name}' required")
        else:
            value = ctx.cookies.get(name)
            if not value:
                raise CredentialError(f"cookie '{name}' required")

        return value

    def _http(self, scheme: SecurityScheme, ctx: RequestContext) -> str:
        header = ctx.header("authorization")
        if not header or not header.strip():
            raise CredentialError("Authorization header required")

        if not scheme.http_scheme:
            return header

        # auth-scheme matched case-insensitively
        prefix, value = get_authorization_scheme_param(header.strip())
        if prefix.lower() != scheme.http_scheme or not value.strip():
            raise CredentialError(
                f"Authorization header with scheme '{scheme.http_scheme.capitalize()}' required",
                kind=ErrorKind.CREDENTIAL_MALFORMED,
            )
        return value.strip()
