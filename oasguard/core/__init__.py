"""
Core module - data models and registries.

This module contains:
- models: Declared schemes and evaluation outcomes
- context: Request context passed to handlers
- registry: Scheme registry and live handler registry
"""

from oasguard.core.models import (
    ApiKeyLocation,
    ErrorKind,
    EvaluationOutcome,
    NormalizedError,
    RequirementSets,
    SchemeOutcome,
    SchemeType,
    SecurityRequirement,
    SecurityScheme,
)

from oasguard.core.context import RequestContext

from oasguard.core.registry import (
    HandlerRegistry,
    RegistryError,
    SchemeRegistry,
    SecurityHandler,
)

__all__ = [
    # Models
    "ApiKeyLocation",
    "ErrorKind",
    "EvaluationOutcome",
    "NormalizedError",
    "RequirementSets",
    "SchemeOutcome",
    "SchemeType",
    "SecurityRequirement",
    "SecurityScheme",
    # Context
    "RequestContext",
    # Registry
    "HandlerRegistry",
    "RegistryError",
    "SchemeRegistry",
    "SecurityHandler",
]
