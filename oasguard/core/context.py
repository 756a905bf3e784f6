"""
Request context - the credential-bearing view of one request.

This is the object passed to security handlers. It carries the request
material the transport layer already located (headers, query, cookies)
plus the raw transport request for handlers that need more.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from starlette.requests import Request


@dataclass
class RequestContext:
    """
    Credential material for a request.

    Header names are stored lowercased so lookups are case-insensitive.

    Usage in handlers:
        def api_key(ctx: RequestContext, scopes, scheme):
            return ctx.credentials[scheme.name] == "secret"
    """

    method: str = "GET"
    path: str = "/"
    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)

    # Matched route template, e.g. "/v1/items/{item_id}"
    route_path: str | None = None

    # The transport's own request object, if any
    request: Any = field(default=None, repr=False)

    # Raw credential per scheme name, filled in during evaluation
    credentials: dict[str, str] = field(default_factory=dict, repr=False)

    # Free-form space for handlers (e.g. decoded token claims)
    state: dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        self.method = self.method.upper()
        self.headers = {k.lower(): v for k, v in self.headers.items()}

    @property
    def error_path(self) -> str:
        """Path reported in error envelopes."""
        return self.route_path or self.path

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    @classmethod
    def from_request(cls, request: Request, route_path: str | None = None) -> RequestContext:
        """Build a context from a Starlette / FastAPI request."""
        return cls(
            method=request.method,
            path=request.url.path,
            headers=dict(request.headers.items()),
            query=dict(request.query_params.items()),
            cookies=dict(request.cookies),
            route_path=route_path,
            request=request,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> RequestContext:
        """Build a context from a plain mapping (tests, non-HTTP hosts)."""
        return cls(
            method=data.get("method", "GET"),
            path=data.get("path", "/"),
            headers=dict(data.get("headers") or {}),
            query=dict(data.get("query") or {}),
            cookies=dict(data.get("cookies") or {}),
            route_path=data.get("route_path"),
        )
