"""
Registries for declared schemes and host-supplied handlers.

The scheme registry is loaded once from the API document and is read-only
afterwards. The handler registry is a live view over a mapping the host
owns: the host may swap handlers between requests, so every lookup reads
the mapping again (last write wins).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterator, MutableMapping, Union

from oasguard.core.models import SecurityScheme

if TYPE_CHECKING:
    from oasguard.core.context import RequestContext

# Handler signature: (ctx, scopes, scheme) -> bool | Awaitable[bool]
SecurityHandler = Callable[
    ["RequestContext", list[str], SecurityScheme],
    Union[bool, Awaitable[bool], Any],
]


class RegistryError(Exception):
    """Raised when there's an error with a registry."""
    pass


class SchemeRegistry:
    """
    Declared security schemes by name.

    Schemes register once, at document load; requirements reference
    them by name.
    """

    def __init__(self, schemes: list[SecurityScheme] | None = None):
        self._schemes: dict[str, SecurityScheme] = {}
        for scheme in schemes or []:
            self.register(scheme)

    def register(self, scheme: SecurityScheme) -> None:
        """Register a scheme by its name."""
        if scheme.name in self._schemes:
            raise RegistryError(f"Security scheme '{scheme.name}' is already registered")
        self._schemes[scheme.name] = scheme

    def get(self, name: str) -> SecurityScheme:
        """Get a scheme by name."""
        if name not in self._schemes:
            raise RegistryError(f"Security scheme '{name}' not found")
        return self._schemes[name]

    def find(self, name: str) -> SecurityScheme | None:
        """Get a scheme by name, or None if undeclared."""
        return self._schemes.get(name)

    def list_schemes(self) -> list[str]:
        """List all declared scheme names."""
        return list(self._schemes.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._schemes

    def __iter__(self) -> Iterator[SecurityScheme]:
        return iter(self._schemes.values())

    def __len__(self) -> int:
        return len(self._schemes)


def _credentials_only(ctx: RequestContext, scopes: list[str], scheme: SecurityScheme) -> bool:
    return True


class HandlerRegistry:
    """
    Live view over the host's handler mapping.

    The mapping is held by reference, never copied: changes the host makes
    to it are visible on the next lookup.

    With no mapping at all (``HandlerRegistry(None)``) the guard runs in
    credentials-only mode: every declared scheme gets a pass-through handler,
    so only credential presence and format are checked. With a mapping, a
    scheme that has no entry is a server misconfiguration.
    """

    def __init__(self, handlers: MutableMapping[str, SecurityHandler] | None = None):
        self._handlers = handlers

    @property
    def credentials_only(self) -> bool:
        return self._handlers is None

    @property
    def handlers(self) -> MutableMapping[str, SecurityHandler] | None:
        """The underlying mapping (the host's object, not a copy)."""
        return self._handlers

    def get(self, name: str) -> SecurityHandler | None:
        """Look up the handler for a scheme, reading the mapping now."""
        if self._handlers is None:
            return _credentials_only
        return self._handlers.get(name)

    def __contains__(self, name: object) -> bool:
        return self._handlers is None or name in self._handlers

    def set(self, name: str, handler: SecurityHandler) -> None:
        """Register or replace a handler (last write wins)."""
        if self._handlers is None:
            raise RegistryError("Cannot register handlers in credentials-only mode")
        self._handlers[name] = handler

    def remove(self, name: str) -> None:
        """Remove a handler if present."""
        if self._handlers is not None:
            self._handlers.pop(name, None)

    def list_handlers(self) -> list[str]:
        """List scheme names that currently have a handler."""
        if self._handlers is None:
            return []
        return list(self._handlers.keys())
