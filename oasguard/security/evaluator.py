"""
Requirement evaluation - the OR-of-AND combinator.

An operation declares alternatives (OR); each alternative lists schemes
that must all pass (AND). Evaluation is strictly sequential:

1. Structural check. Every referenced scheme must be declared and have a
   handler. The first gap denies with 500 before any handler runs.
2. Alternatives in declared order. Within one, schemes in declared
   order; the first failing scheme ends that alternative and later
   schemes' handlers are not called.
3. The first alternative that passes in full allows; later alternatives
   are not touched.
4. If all fail, the error of the first alternative's first failing scheme
   is reported.
"""

from __future__ import annotations

import logging
from typing import Sequence

from oasguard.core.context import RequestContext
from oasguard.core.models import (
    ErrorKind,
    EvaluationOutcome,
    NormalizedError,
    SchemeOutcome,
    SecurityRequirement,
)
from oasguard.core.registry import HandlerRegistry, SchemeRegistry
from oasguard.security.dispatcher import HandlerDispatcher
from oasguard.security.extractor import CredentialError, CredentialExtractor
from oasguard.security.scopes import ScopeResolver

logger = logging.getLogger(__name__)

STRUCTURAL_STATUS = 500


class RequirementEvaluator:
    """
    Decides ALLOW / DENY for one request against an operation's requirements.

    Usage:
        evaluator = RequirementEvaluator(document.schemes, HandlerRegistry(handlers))
        outcome = await evaluator.evaluate(document.security_for("GET", "/pets"), ctx)
        if outcome.denied:
            envelope = ErrorNormalizer().normalize(outcome)

    The evaluator keeps no per-request state, so one instance serves
    concurrent requests.
    """

    def __init__(
        self,
        schemes: SchemeRegistry,
        handlers: HandlerRegistry,
        extractor: CredentialExtractor | None = None,
        scopes: ScopeResolver | None = None,
        dispatcher: HandlerDispatcher | None = None,
    ):
        self.schemes = schemes
        self.handlers = handlers
        self.extractor = extractor or CredentialExtractor()
        self.scopes = scopes or ScopeResolver(schemes)
        self.dispatcher = dispatcher or HandlerDispatcher()

    async def evaluate(
        self,
        requirement_sets: Sequence[SecurityRequirement] | None,
        ctx: RequestContext,
    ) -> EvaluationOutcome:
        if not requirement_sets:
            logger.debug(f"No security declared for {ctx.error_path}, allowing")
            return EvaluationOutcome.allow()

        structural = self._check_structure(requirement_sets, ctx)
        if structural is not None:
            return self._deny(structural)

        first_error: NormalizedError | None = None

        for index, requirement in enumerate(requirement_sets):
            outcome = await self._evaluate_requirement(requirement, ctx)

            if outcome.success:
                logger.debug(
                    f"Requirement #{index} {list(requirement)} satisfied for {ctx.error_path}"
                )
                return EvaluationOutcome.allow()

            error = outcome.error
            if error.kind.is_structural:
                # Handler vanished mid-evaluation; never retried
                return self._deny(error)

            if first_error is None:
                first_error = error

        return self._deny(first_error)

    async def _evaluate_requirement(
        self,
        requirement: SecurityRequirement,
        ctx: RequestContext,
    ) -> SchemeOutcome:
        """AND of the requirement's schemes, stopping at the first failure."""
        for scheme_name in requirement:
            outcome = await self._evaluate_scheme(requirement, scheme_name, ctx)
            if not outcome.success:
                return outcome
        # An empty requirement is the anonymous alternative
        return SchemeOutcome.ok()

    async def _evaluate_scheme(
        self,
        requirement: SecurityRequirement,
        scheme_name: str,
        ctx: RequestContext,
    ) -> SchemeOutcome:
        scheme = self.schemes.get(scheme_name)

        # Read the registry now: the host may have swapped handlers
        handler = self.handlers.get(scheme_name)
        if handler is None:
            return SchemeOutcome.failed(self._handler_missing(scheme_name, ctx))

        try:
            credential = self.extractor.extract(scheme, ctx)
        except CredentialError as e:
            logger.debug(f"Scheme '{scheme_name}' credential check failed: {e.message}")
            return SchemeOutcome.failed(
                NormalizedError(
                    status_code=401,
                    message=e.message,
                    path=ctx.error_path,
                    kind=e.kind,
                    scheme=scheme_name,
                )
            )

        if credential.value is not None:
            ctx.credentials[scheme_name] = credential.value

        scopes = self.scopes.resolve(requirement, scheme_name)
        return await self.dispatcher.dispatch(handler, ctx, scopes, scheme)

    def _check_structure(
        self,
        requirement_sets: Sequence[SecurityRequirement],
        ctx: RequestContext,
    ) -> NormalizedError | None:
        for requirement in requirement_sets:
            for scheme_name in requirement:
                if scheme_name not in self.schemes:
                    return self._scheme_undeclared(scheme_name, ctx)
                if self.handlers.get(scheme_name) is None:
                    return self._handler_missing(scheme_name, ctx)
        return None

    def _handler_missing(self, scheme_name: str, ctx: RequestContext) -> NormalizedError:
        return NormalizedError(
            status_code=STRUCTURAL_STATUS,
            message=f"a security handler for '{scheme_name}' does not exist",
            path=ctx.error_path,
            kind=ErrorKind.HANDLER_MISSING,
            scheme=scheme_name,
        )

    def _scheme_undeclared(self, scheme_name: str, ctx: RequestContext) -> NormalizedError:
        if len(self.schemes) == 0:
            message = (
                f"security referenced at path {ctx.error_path}, "
                "but not defined in 'components.securitySchemes'"
            )
        else:
            message = f"components.securitySchemes.{scheme_name} does not exist"
        return NormalizedError(
            status_code=STRUCTURAL_STATUS,
            message=message,
            path=ctx.error_path,
            kind=ErrorKind.SCHEME_UNDECLARED,
            scheme=scheme_name,
        )

    def _deny(self, error: NormalizedError) -> EvaluationOutcome:
        if error.kind.is_structural:
            logger.warning(f"Security misconfiguration on {error.path}: {error.message}")
        else:
            logger.info(
                f"Denied {error.path} ({error.status_code} {error.kind.value}"
                f" on '{error.scheme}'): {error.message}"
            )
        return EvaluationOutcome.deny(error)
