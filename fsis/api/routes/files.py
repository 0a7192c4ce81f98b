"""
File serving routes.

- ``GET /fsis?g=<group>&f=<file>`` streams the file (direct mode)
- ``GET /fsis/embed?g=<group>&f=<file>&width=&height=&alt=&title=`` returns
  an HTML fragment linking to the direct URL (embedded mode)
"""

import asyncio
from typing import Annotated
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from fsis.api.dependencies import Services, get_actor, get_services
from fsis.api.middleware import add_actor_to_wide_event, add_resolution_to_wide_event
from fsis.core.models import Actor, ResolutionRequest
from fsis.core.parsers import get_int, get_text

router = APIRouter()


def build_self_url(request: Request, group: str, filename: str) -> str:
    """Relative URL of the direct-fetch route for a group/filename pair."""
    path = request.scope.get("root_path", "") + request.app.url_path_for("serve_file")
    return f"{path}?{urlencode({'g': group, 'f': filename})}"


async def _serve(
    request: Request,
    services: Services,
    resolution_request: ResolutionRequest,
    language: str | None,
) -> Response:
    add_actor_to_wide_event(resolution_request.actor)

    # Filesystem checks and MIME sniffing block, keep them off the event loop
    resolution = await asyncio.to_thread(services.resolver.resolve, resolution_request)
    add_resolution_to_wide_event(resolution_request, resolution)

    self_url = build_self_url(request, resolution_request.group, resolution_request.filename)
    return await asyncio.to_thread(
        services.renderer.render,
        resolution_request,
        resolution,
        self_url,
        language,
    )


@router.get("", name="serve_file")
async def serve_file(
    request: Request,
    services: Annotated[Services, Depends(get_services)],
    actor: Annotated[Actor, Depends(get_actor)],
    g: str = "",
    f: str = "",
    uselang: str | None = None,
) -> Response:
    """Serve a file from a configured group."""
    resolution_request = ResolutionRequest(
        group=g,
        filename=f,
        is_embedded=False,
        actor=actor,
    )
    return await _serve(request, services, resolution_request, uselang)


@router.get("/embed", name="embed_file")
async def embed_file(
    request: Request,
    services: Annotated[Services, Depends(get_services)],
    actor: Annotated[Actor, Depends(get_actor)],
    g: str = "",
    f: str = "",
    width: str | None = None,
    height: str | None = None,
    alt: str | None = None,
    title: str | None = None,
    uselang: str | None = None,
) -> Response:
    """Render an image link to a group file for inclusion in a page."""
    resolution_request = ResolutionRequest(
        group=g,
        filename=f,
        is_embedded=True,
        actor=actor,
        width=get_int(width),
        height=get_int(height),
        alt=get_text(alt),
        title=get_text(title),
    )
    return await _serve(request, services, resolution_request, uselang)
