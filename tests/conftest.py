"""Shared fixtures."""

from pathlib import Path

import pytest

from oasguard.core.context import RequestContext
from oasguard.document import ApiDocument

RESOURCES = Path(__file__).parent / "resources"


@pytest.fixture
def document():
    """The security fixture document, base path /v1."""
    return ApiDocument.from_file(RESOURCES / "security.yaml")


@pytest.fixture
def schemes(document):
    return document.schemes


@pytest.fixture
def make_ctx():
    """Build a request context for a route."""

    def _make(path="/v1/api_key", headers=None, query=None, cookies=None, method="GET"):
        return RequestContext(
            method=method,
            path=path,
            route_path=path,
            headers=headers or {},
            query=query or {},
            cookies=cookies or {},
        )

    return _make


class Spy:
    """A handler that records its calls and returns a fixed result."""

    def __init__(self, result=True):
        self.result = result
        self.calls = []

    def __call__(self, ctx, scopes, scheme):
        self.calls.append((scopes, scheme))
        if isinstance(self.result, BaseException):
            raise self.result
        return self.result

    @property
    def called(self):
        return len(self.calls) > 0


@pytest.fixture
def spy():
    return Spy
