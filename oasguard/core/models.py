"""
Core data models for security evaluation.

These models represent the declared side (schemes, requirements) and the
result side (outcomes, normalized errors) of an authorization decision.
Declared models are immutable once loaded from the API document.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================


class SchemeType(str, Enum):
    """Type of a declared security scheme."""

    API_KEY = "apiKey"
    HTTP = "http"
    OAUTH2 = "oauth2"
    OPENID_CONNECT = "openIdConnect"


class ApiKeyLocation(str, Enum):
    """Where an API key is carried in the request."""

    HEADER = "header"
    QUERY = "query"
    COOKIE = "cookie"


class ErrorKind(str, Enum):
    """Why an evaluation was denied."""

    CREDENTIAL_MISSING = "CredentialMissing"  # Caller fault, 401
    CREDENTIAL_MALFORMED = "CredentialMalformed"  # Caller fault, 401
    HANDLER_REJECTED = "HandlerRejected"  # Caller fault, handler status
    HANDLER_MISSING = "HandlerMissing"  # Server misconfiguration, 500
    SCHEME_UNDECLARED = "SchemeUndeclared"  # Server misconfiguration, 500

    @property
    def is_structural(self) -> bool:
        """Structural errors abort evaluation and are never retried."""
        return self in (ErrorKind.HANDLER_MISSING, ErrorKind.SCHEME_UNDECLARED)


# Scopes carried only by these scheme types
SCOPED_SCHEME_TYPES = frozenset({SchemeType.OAUTH2, SchemeType.OPENID_CONNECT})


# =============================================================================
# Declared security
# =============================================================================


class SecurityScheme(BaseModel):
    """
    A named security scheme from ``components.securitySchemes``.

    ``name`` is the registry key (the name used in requirements), not the
    apiKey parameter name, which lives in ``parameter_name``.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    type: SchemeType
    description: str | None = None

    # apiKey
    location: ApiKeyLocation | None = None
    parameter_name: str | None = None

    # http
    http_scheme: str | None = None
    bearer_format: str | None = None

    # oauth2
    flows: dict[str, Any] = Field(default_factory=dict)

    # openIdConnect
    openid_connect_url: str | None = None

    @property
    def carries_scopes(self) -> bool:
        return self.type in SCOPED_SCHEME_TYPES

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> SecurityScheme:
        """Build a scheme from its OpenAPI object."""
        return cls(
            name=name,
            type=data["type"],
            description=data.get("description"),
            location=data.get("in"),
            parameter_name=data.get("name"),
            http_scheme=(data.get("scheme") or "").lower() or None,
            bearer_format=data.get("bearerFormat"),
            flows=dict(data.get("flows") or {}),
            openid_connect_url=data.get("openIdConnectUrl"),
        )


# Scheme name -> required scopes. All entries must succeed (AND).
SecurityRequirement = Mapping[str, tuple[str, ...]]

# Alternatives. Any one requirement succeeding authorizes (OR).
RequirementSets = tuple[SecurityRequirement, ...]


# =============================================================================
# Outcomes
# =============================================================================


@dataclass(frozen=True)
class NormalizedError:
    """The single error reported for a denied evaluation."""

    status_code: int
    message: str
    path: str
    kind: ErrorKind
    scheme: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status_code": self.status_code,
            "message": self.message,
            "path": self.path,
            "kind": self.kind.value,
            "scheme": self.scheme,
        }


@dataclass(frozen=True)
class SchemeOutcome:
    """Result of checking one scheme: success, or failure with its error."""

    success: bool
    error: NormalizedError | None = None

    @classmethod
    def ok(cls) -> SchemeOutcome:
        return cls(success=True)

    @classmethod
    def failed(cls, error: NormalizedError) -> SchemeOutcome:
        return cls(success=False, error=error)


@dataclass(frozen=True)
class EvaluationOutcome:
    """ALLOW, or DENY carrying exactly one NormalizedError."""

    allowed: bool
    error: NormalizedError | None = None

    @property
    def denied(self) -> bool:
        return not self.allowed

    @classmethod
    def allow(cls) -> EvaluationOutcome:
        return cls(allowed=True)

    @classmethod
    def deny(cls, error: NormalizedError) -> EvaluationOutcome:
        return cls(allowed=False, error=error)
