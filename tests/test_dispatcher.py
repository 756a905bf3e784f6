"""
Tests for handler dispatch: every handler shape folds into one outcome.
"""

import asyncio

import pytest
from fastapi import HTTPException

from oasguard.core.models import ErrorKind
from oasguard.security.dispatcher import HandlerDispatcher
from oasguard.security.errors import Forbidden, HandlerError


@pytest.fixture
def dispatch(schemes, make_ctx):
    """Dispatch a handler against the ApiKeyAuth scheme."""
    dispatcher = HandlerDispatcher()

    def _dispatch(handler, scopes=None):
        ctx = make_ctx(headers={"X-API-Key": "test"})
        return asyncio.run(
            dispatcher.dispatch(handler, ctx, scopes or [], schemes.get("ApiKeyAuth"))
        )

    return _dispatch


class StatusError(Exception):
    def __init__(self, status, message):
        super().__init__(message)
        self.status = status
        self.message = message


# =============================================================================
# Success
# =============================================================================


class TestSuccess:
    def test_sync_true(self, dispatch):
        assert dispatch(lambda ctx, scopes, scheme: True).success

    def test_async_true(self, dispatch):
        async def handler(ctx, scopes, scheme):
            await asyncio.sleep(0)
            return True

        assert dispatch(handler).success

    def test_sync_returning_awaitable(self, dispatch):
        async def check():
            return True

        assert dispatch(lambda ctx, scopes, scheme: check()).success

    @pytest.mark.parametrize("result", [1, "yes", {"user": "alice"}, ["read"]])
    def test_truthy_values_succeed(self, dispatch, result):
        assert dispatch(lambda ctx, scopes, scheme: result).success

    def test_async_user_object_succeeds(self, dispatch):
        async def handler(ctx, scopes, scheme):
            return {"sub": "user_1"}

        assert dispatch(handler).success

    def test_handler_receives_scopes_and_scheme(self, dispatch, spy):
        handler = spy(True)
        dispatch(handler, scopes=["read"])
        scopes, scheme = handler.calls[0]
        assert scopes == ["read"]
        assert scheme.name == "ApiKeyAuth"


# =============================================================================
# Falsy results
# =============================================================================


class TestRejectedResults:
    @pytest.mark.parametrize("result", [False, None, 0, "", []])
    def test_falsy_is_unauthorized(self, dispatch, result):
        outcome = dispatch(lambda ctx, scopes, scheme: result)
        assert not outcome.success
        assert outcome.error.status_code == 401
        assert outcome.error.message == "unauthorized"
        assert outcome.error.kind == ErrorKind.HANDLER_REJECTED
        assert outcome.error.scheme == "ApiKeyAuth"
        assert outcome.error.path == "/v1/api_key"

    def test_async_false(self, dispatch):
        async def handler(ctx, scopes, scheme):
            return False

        outcome = dispatch(handler)
        assert outcome.error.status_code == 401
        assert outcome.error.message == "unauthorized"


# =============================================================================
# Raised errors
# =============================================================================


class TestRaisedErrors:
    def test_plain_exception_message(self, dispatch):
        def handler(ctx, scopes, scheme):
            raise Exception("custom api key handler failed")

        outcome = dispatch(handler)
        assert outcome.error.status_code == 401
        assert outcome.error.message == "custom api key handler failed"

    def test_async_rejection(self, dispatch):
        async def handler(ctx, scopes, scheme):
            raise Exception("rejected promise")

        outcome = dispatch(handler)
        assert outcome.error.status_code == 401
        assert outcome.error.message == "rejected promise"

    def test_status_and_message_propagate(self, dispatch):
        def handler(ctx, scopes, scheme):
            raise StatusError(403, "forbidden")

        outcome = dispatch(handler)
        assert outcome.error.status_code == 403
        assert outcome.error.message == "forbidden"

    def test_handler_error_helpers(self, dispatch):
        def forbid(ctx, scopes, scheme):
            raise Forbidden()

        def teapot(ctx, scopes, scheme):
            raise HandlerError("nope", status=418)

        assert dispatch(forbid).error.status_code == 403
        assert dispatch(forbid).error.message == "forbidden"
        assert dispatch(teapot).error.status_code == 418

    def test_starlette_http_exception(self, dispatch):
        def handler(ctx, scopes, scheme):
            raise HTTPException(status_code=403, detail="no entry")

        outcome = dispatch(handler)
        assert outcome.error.status_code == 403
        assert outcome.error.message == "no entry"

    def test_empty_exception_defaults(self, dispatch):
        def handler(ctx, scopes, scheme):
            raise RuntimeError()

        outcome = dispatch(handler)
        assert outcome.error.status_code == 401
        assert outcome.error.message == "unauthorized"

    def test_non_integer_status_ignored(self, dispatch):
        def handler(ctx, scopes, scheme):
            raise StatusError("403", "bad status type")

        assert dispatch(handler).error.status_code == 401

    def test_invoked_exactly_once(self, dispatch, spy):
        handler = spy(Exception("boom"))
        dispatch(handler)
        assert len(handler.calls) == 1
