"""Authorization capability: AuthConfig and AuthorizationPolicy per protected resource."""

from .controller import AuthorizationController

__all__ = ["AuthorizationController"]
