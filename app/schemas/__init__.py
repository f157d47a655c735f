"""Public schema exports."""

from .auth import AuthorizationLink

__all__ = ["AuthorizationLink"]
