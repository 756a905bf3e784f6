"""
FastAPI integration - security evaluation at the route boundary.

The guard plugs in as a custom route class. Routes built with it:
1. Evaluate the operation's security before the endpoint runs
2. Answer with the error envelope on DENY
3. Serialize envelope-shaped errors raised by the endpoint themselves,
   ahead of the application's exception handlers

Usage:
    guard = SecurityGuard(ApiDocument.from_file("api.yaml"), handlers)
    router = guard.router(prefix="/v1")

    @router.get("/pets")
    async def list_pets(request: Request):
        ctx = request.state.security_context
        ...
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Coroutine, MutableMapping

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.routing import APIRoute

from oasguard.config import Settings, get_settings
from oasguard.core.context import RequestContext
from oasguard.core.models import EvaluationOutcome
from oasguard.core.registry import HandlerRegistry, SecurityHandler
from oasguard.document import ApiDocument
from oasguard.security.errors import ErrorNormalizer, is_envelope_error
from oasguard.security.evaluator import RequirementEvaluator

logger = logging.getLogger(__name__)


class SecurityGuard:
    """
    Ties a document, a handler registry and the evaluator together.

    ``handlers`` is kept by reference: handlers added to or removed from
    the mapping later take effect on the next request. Pass None to check
    only credential presence and format.
    """

    def __init__(
        self,
        document: ApiDocument,
        handlers: MutableMapping[str, SecurityHandler] | HandlerRegistry | None = None,
        settings: Settings | None = None,
    ):
        self.document = document
        self.settings = settings or get_settings()
        self.handlers = handlers if isinstance(handlers, HandlerRegistry) else HandlerRegistry(handlers)
        self.evaluator = RequirementEvaluator(document.schemes, self.handlers)
        self.normalizer = ErrorNormalizer()
        self.route_class = _build_route_class(self)

    async def check(self, ctx: RequestContext) -> EvaluationOutcome:
        """Evaluate the operation matching ``ctx`` (method + route path)."""
        if not self.settings.validate_security:
            return EvaluationOutcome.allow()

        path = ctx.route_path or ctx.path
        requirement_sets = self.document.security_for(ctx.method, path)
        if requirement_sets is None:
            logger.debug(f"{ctx.method} {path} not declared in document, skipping security")
            return EvaluationOutcome.allow()

        return await self.evaluator.evaluate(requirement_sets, ctx)

    def router(self, **kwargs: Any) -> APIRouter:
        """An APIRouter whose routes are guarded."""
        return APIRouter(route_class=self.route_class, **kwargs)

    def install(self, app: FastAPI) -> None:
        """Guard every route added to ``app`` from now on."""
        app.router.route_class = self.route_class
        app.state.security_guard = self


def _build_route_class(guard: SecurityGuard) -> type[APIRoute]:

    class SecuredRoute(APIRoute):
        def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
            endpoint_handler = super().get_route_handler()
            route_path = self.path

            async def secured_handler(request: Request) -> Response:
                ctx = RequestContext.from_request(request, route_path=route_path)

                outcome = await guard.check(ctx)
                if outcome.denied:
                    return guard.normalizer.normalize(outcome).to_response()

                request.state.security_context = ctx
                try:
                    return await endpoint_handler(request)
                except Exception as e:
                    if is_envelope_error(e):
                        return guard.normalizer.from_exception(e, route_path).to_response()
                    raise

            return secured_handler

    return SecuredRoute
