"""
Health check endpoints.
"""

import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends

from fsis.api.dependencies import Services, get_services
from fsis.core.exceptions import UnknownOrTraversalFileError

router = APIRouter()


@router.get("/api/health")
async def health_check() -> dict:
    """Basic health check."""
    return {"status": "healthy"}


@router.get("/api/ready")
async def readiness_check(
    services: Annotated[Services, Depends(get_services)],
) -> dict:
    """Readiness check - every group's base directory must be available."""
    resolver = services.resolver

    def check_groups() -> dict[str, str]:
        groups = {}
        for name in sorted(resolver.groups):
            try:
                resolver.canonical_base(name)
                groups[name] = "available"
            except UnknownOrTraversalFileError:
                groups[name] = "unavailable"
        return groups

    groups = await asyncio.to_thread(check_groups)
    degraded = any(state != "available" for state in groups.values())

    return {
        "status": "degraded" if degraded else "ready",
        "groups": groups,
    }
