"""
API document loader.

Reads the security-relevant parts of an OpenAPI 3 document: the declared
``components.securitySchemes``, the root ``security`` list and each
operation's own ``security`` list. Everything else in the document is left
to other tooling.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml
from pydantic import ValidationError

from oasguard.core.models import ApiKeyLocation, RequirementSets, SchemeType, SecurityScheme
from oasguard.core.registry import SchemeRegistry

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")

_PARAM = re.compile(r"\{[^/}]+\}")


class DocumentError(Exception):
    """Raised when the document's security declarations are invalid."""
    pass


def normalize_template(path: str) -> str:
    """``/pets/{petId}`` -> ``/pets/{}`` so parameter names don't matter."""
    path = _PARAM.sub("{}", path)
    if len(path) > 1:
        path = path.rstrip("/")
    return path or "/"


class ApiDocument:
    """
    Security view of an OpenAPI document.

    Schemes are validated on load; a bad declaration fails here rather
    than on the first request that uses it.
    """

    def __init__(self, data: Mapping[str, Any], base_path: str | None = None):
        if not isinstance(data, Mapping):
            raise DocumentError("API document must be a mapping")

        self.raw = data
        self.schemes = self._load_schemes(data)
        self.root_security = self._load_requirements(data.get("security"), "root")
        self.base_path = _clean_base(
            base_path if base_path is not None else _server_base_path(data)
        )

        # (METHOD, normalized template) -> requirement sets, None = inherit root
        self._operations: dict[tuple[str, str], RequirementSets | None] = {}
        self._load_operations(data.get("paths") or {})

        logger.debug(
            f"Loaded API document: {len(self.schemes)} schemes, "
            f"{len(self._operations)} operations, base path '{self.base_path}'"
        )

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], base_path: str | None = None) -> ApiDocument:
        return cls(data, base_path=base_path)

    @classmethod
    def from_file(cls, path: Path | str, base_path: str | None = None) -> ApiDocument:
        """Load a YAML (or JSON) document from disk."""
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f)
        logger.info(f"Loading API document from {path}")
        return cls(data, base_path=base_path)

    # =========================================================================
    # Lookup
    # =========================================================================

    def has_operation(self, method: str, path: str) -> bool:
        return self._key(method, path) in self._operations

    def security_for(self, method: str, path: str) -> RequirementSets | None:
        """
        Requirement sets for an operation.

        ``path`` may include the base path. Operation-level ``security``
        overrides the root list, and an explicit empty list disables
        security. Returns None when the operation is not declared.
        """
        key = self._key(method, path)
        if key not in self._operations:
            return None
        own = self._operations[key]
        return self.root_security if own is None else own

    def strip_base(self, path: str) -> str:
        if self.base_path and (path == self.base_path or path.startswith(self.base_path + "/")):
            return path[len(self.base_path):] or "/"
        return path

    def _key(self, method: str, path: str) -> tuple[str, str]:
        return method.upper(), normalize_template(self.strip_base(path))

    # =========================================================================
    # Loading
    # =========================================================================

    def _load_schemes(self, data: Mapping[str, Any]) -> SchemeRegistry:
        components = data.get("components") or {}
        declared = components.get("securitySchemes") or {}
        registry = SchemeRegistry()

        for name, spec in declared.items():
            if not isinstance(spec, Mapping):
                raise DocumentError(f"components.securitySchemes.{name} must be an object")
            if "type" not in spec:
                raise DocumentError(f"components.securitySchemes.{name} must have property 'type'")
            try:
                scheme = SecurityScheme.from_dict(name, spec)
            except ValidationError as e:
                raise DocumentError(f"components.securitySchemes.{name} is invalid: {e}") from e

            if scheme.type == SchemeType.API_KEY:
                if scheme.location not in tuple(ApiKeyLocation) or not scheme.parameter_name:
                    raise DocumentError(
                        f"components.securitySchemes.{name} requires 'in' and 'name'"
                    )
            registry.register(scheme)

        return registry

    def _load_requirements(self, value: Any, where: str) -> RequirementSets:
        if value is None:
            return ()
        if not isinstance(value, list):
            raise DocumentError(f"security at {where} must be a list")

        requirements = []
        for item in value:
            if not isinstance(item, Mapping):
                raise DocumentError(f"security requirement at {where} must be an object")
            requirement: dict[str, tuple[str, ...]] = {}
            for scheme_name, scopes in item.items():
                if scopes is None:
                    scopes = []
                if not isinstance(scopes, list):
                    raise DocumentError(
                        f"scopes for '{scheme_name}' at {where} must be a list"
                    )
                requirement[scheme_name] = tuple(str(s) for s in scopes)
            requirements.append(requirement)
        return tuple(requirements)

    def _load_operations(self, paths: Mapping[str, Any]) -> None:
        for template, item in paths.items():
            if not isinstance(item, Mapping):
                continue
            for method in HTTP_METHODS:
                operation = item.get(method)
                if not isinstance(operation, Mapping):
                    continue
                where = f"{method.upper()} {template}"
                own = (
                    self._load_requirements(operation["security"], where)
                    if "security" in operation
                    else None
                )
                self._operations[(method.upper(), normalize_template(template))] = own


def _server_base_path(data: Mapping[str, Any]) -> str:
    servers = data.get("servers") or []
    if not servers or not isinstance(servers[0], Mapping):
        return ""
    return urlparse(str(servers[0].get("url") or "")).path


def _clean_base(path: str) -> str:
    path = (path or "").rstrip("/")
    if path and not path.startswith("/"):
        path = "/" + path
    return path
