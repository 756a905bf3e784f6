"""FastAPI integration."""

from oasguard.api.app import create_app
from oasguard.api.guard import SecurityGuard

__all__ = ["SecurityGuard", "create_app"]
