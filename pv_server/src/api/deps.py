"""
FastAPI dependency injection providers.

Provides the process-wide SessionService stored on app.state for use with
FastAPI's Depends() mechanism.

CHANGELOG:
- 2026-10-13: Initial creation (STORY-007)
"""

from typing import Annotated

from fastapi import Depends, Request

from pv_server.src.service import SessionService


def get_service(request: Request) -> SessionService:
    """Return the SessionService built at startup.

    Args:
        request: The incoming FastAPI request.

    Returns:
        SessionService: The shared session facade.
    """
    return request.app.state.service


# Type alias for injecting the facade via FastAPI Depends().
# Usage in route handlers:
#   def my_route(service: Service):
#       service.get_warnings()
Service = Annotated[SessionService, Depends(get_service)]
