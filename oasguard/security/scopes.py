"""Scope resolution for one scheme within one requirement."""

from __future__ import annotations

from oasguard.core.models import SecurityRequirement
from oasguard.core.registry import SchemeRegistry


class ScopeResolver:
    """
    Derives the scopes a requirement demands of a scheme.

    Scopes are per requirement, not per scheme: the same scheme may ask
    for different scopes in different alternatives.
    """

    def __init__(self, schemes: SchemeRegistry):
        self.schemes = schemes

    def resolve(self, requirement: SecurityRequirement, scheme_name: str) -> list[str]:
        """
        Scopes for ``scheme_name`` in ``requirement``.

        Empty for apiKey / http schemes. For oauth2 / openIdConnect the
        declared list is returned verbatim (order and duplicates kept), as a
        new list each call.
        """
        scheme = self.schemes.find(scheme_name)
        if scheme is None or not scheme.carries_scopes:
            return []
        return list(requirement.get(scheme_name) or ())
