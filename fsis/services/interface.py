"""
Host capability interfaces.

The resolver and renderer only talk to these abstractions; concrete
implementations live next to this module and are wired up in the API layer.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from fsis.core.models import Actor


class PermissionChecker(ABC):
    """Decides whether an actor holds a named right."""

    @abstractmethod
    def has_permission(self, actor: Actor, permission: str) -> bool:
        pass


class MimeDetector(ABC):
    """Determines the MIME type of a file on disk."""

    @abstractmethod
    def detect(self, path: str) -> str:
        """Sniff the file content, then refine the result by extension.

        Args:
            path: Absolute path of an existing, readable file

        Returns:
            Lower-case MIME type, e.g. "image/png"
        """
        pass


class Localizer(ABC):
    """Turns message keys into user-facing text."""

    @abstractmethod
    def message(self, key: str, language: str | None = None) -> str:
        pass


class ResponseSink(ABC):
    """Builds the outgoing response in whatever form the host uses."""

    @abstractmethod
    def html(self, fragment: str) -> Any:
        """Return an HTML fragment as page content."""
        pass

    @abstractmethod
    def file(
        self,
        path: str,
        media_type: str,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Stream a file's bytes with the given content type."""
        pass

    @abstractmethod
    def text(self, status_code: int, body: str) -> Any:
        """Return a plain-text body with a status code."""
        pass
