"""
Wide Events Middleware for FastAPI.

This middleware implements the canonical log line pattern:
- Initializes a wide event at request start
- Handlers add actor and resolution context
- Finalizes and emits on request completion
- One comprehensive log entry per request

Usage:
    app.add_middleware(WideEventMiddleware)
"""

from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from fsis.core.logging import (
    emit_wide_event,
    enrich_event,
    finalize_request_event,
    init_request_event,
)
from fsis.core.models import Actor, Failure, Resolution, ResolutionRequest


class WideEventMiddleware(BaseHTTPMiddleware):
    """
    Middleware that captures wide events for every request.

    Creates one comprehensive log entry per request containing:
    - Request metadata (method, path, client)
    - Actor context (added by the file routes)
    - Resolution context (group, outcome, internal reason)
    - Response metadata (status, duration)
    - Error context (if applicable)
    """

    # Paths to skip (health checks generate too much noise)
    SKIP_PATHS = {"/api/health", "/api/ready", "/favicon.ico"}

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        request_id = request.headers.get("x-request-id")
        init_request_event(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_ip=self._get_client_ip(request),
            user_agent=request.headers.get("user-agent", ""),
        )

        if request.query_params:
            enrich_event(**{"http.query_params": dict(request.query_params)})

        error: Exception | None = None
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response

        except Exception as e:
            error = e
            status_code = getattr(e, "status_code", 500)
            raise

        finally:
            event = finalize_request_event(status_code, error)
            emit_wide_event(event)

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP, respecting proxy headers."""
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return "unknown"


def add_actor_to_wide_event(actor: Actor) -> None:
    """Add the requesting actor to the wide event."""
    enrich_event(
        actor={
            "name": actor.name,
            "roles": list(actor.roles),
            "anonymous": actor.is_anonymous,
        }
    )


def add_resolution_to_wide_event(
    request: ResolutionRequest,
    resolution: Resolution,
) -> None:
    """
    Add the resolution outcome to the wide event.

    Failures served with a fallback answer 200, so the logical status and the
    internal reason are recorded here for operators.
    """
    fsis = {
        "group": request.group,
        "filename": request.filename[:200],
        "embedded": request.is_embedded,
    }

    if isinstance(resolution, Failure):
        fsis.update(
            outcome="failure",
            status_code=resolution.status_code,
            reason=resolution.reason,
            fallback=resolution.fallback_path is not None,
        )
    else:
        fsis.update(outcome="success", mime_type=resolution.mime_type)

    enrich_event(fsis=fsis)
