"""
Core package initialization.
"""

from fsis.core.config import GroupConfig, Settings, TokenEntry, get_settings
from fsis.core.models import (
    ANONYMOUS,
    Actor,
    Failure,
    Resolution,
    ResolutionRequest,
    Success,
)

__all__ = [
    # Config
    "GroupConfig",
    "Settings",
    "TokenEntry",
    "get_settings",
    # Models
    "ANONYMOUS",
    "Actor",
    "Failure",
    "Resolution",
    "ResolutionRequest",
    "Success",
]
