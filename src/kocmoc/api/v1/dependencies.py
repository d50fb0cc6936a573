"""Shared API dependencies for authentication and service access."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from kocmoc.core.errors import AuthFailure, UnauthenticatedError
from kocmoc.services import Identity, ServiceContainer

# Missing credentials are reported through UnauthenticatedError, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


def get_container(request: Request) -> ServiceContainer:
    """Return the service container built at application startup."""
    container: ServiceContainer = request.app.state.container
    return container


ContainerDep = Annotated[ServiceContainer, Depends(get_container)]


def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    container: ContainerDep,
) -> Identity:
    """Resolve the bearer token into the caller's identity.

    Raises:
        UnauthenticatedError: No token, or the session manager rejects it.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError("Authentication required", AuthFailure.MISSING)
    return container.sessions.validate(credentials.credentials)


# Type alias for current identity dependency
CurrentIdentityDep = Annotated[Identity, Depends(get_current_identity)]
