"""
Service wiring and FastAPI dependencies.

Services are built once per application from ``Settings`` and kept on
``app.state``; request handlers reach them through the dependencies below.
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from fsis.core.config import Settings
from fsis.core.models import Actor
from fsis.services.interface import Localizer, MimeDetector, PermissionChecker
from fsis.services.localizer import CatalogLocalizer
from fsis.services.mime_detector import MagicMimeDetector
from fsis.services.permissions import RolePermissionChecker, TokenRegistry
from fsis.services.renderer import ResponseRenderer, StarletteResponseSink
from fsis.services.resolver import SecureFileResolver

# Security scheme for Swagger UI
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Services:
    """Everything a request handler needs, built once per app."""

    settings: Settings
    resolver: SecureFileResolver
    renderer: ResponseRenderer
    tokens: TokenRegistry


def build_services(
    settings: Settings,
    permissions: PermissionChecker | None = None,
    mime_detector: MimeDetector | None = None,
    localizer: Localizer | None = None,
) -> Services:
    """Build the service graph; any host capability can be swapped in."""
    permissions = permissions or RolePermissionChecker(settings.role_rights)
    mime_detector = mime_detector or MagicMimeDetector()
    localizer = localizer or CatalogLocalizer(default_language=settings.default_language)

    return Services(
        settings=settings,
        resolver=SecureFileResolver(settings.groups, permissions, mime_detector),
        renderer=ResponseRenderer(
            StarletteResponseSink(),
            localizer,
            mime_detector,
            cache_max_age=settings.cache_max_age,
        ),
        tokens=TokenRegistry(settings.api_tokens),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


async def get_actor(
    services: Annotated[Services, Depends(get_services)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Actor:
    """Identify the caller from an optional bearer token."""
    token = credentials.credentials if credentials else None
    return services.tokens.actor_for(token)
