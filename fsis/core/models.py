"""
Core models and types for the FS Image Server.

Requests and resolutions are short-lived value objects: one per incoming
call, discarded once the response has been produced.
"""

from dataclasses import dataclass, field
from typing import Union

ANONYMOUS_ROLE = "*"


@dataclass(frozen=True)
class Actor:
    """Whoever is making the request."""

    name: str
    roles: tuple[str, ...] = (ANONYMOUS_ROLE,)

    @property
    def is_anonymous(self) -> bool:
        return self.roles == (ANONYMOUS_ROLE,)


ANONYMOUS = Actor(name="anonymous")


@dataclass(frozen=True)
class ResolutionRequest:
    """An untrusted (group, filename) pair plus rendering hints."""

    group: str
    filename: str
    is_embedded: bool = False
    actor: Actor = ANONYMOUS
    # Display hints, only used when embedding. 0 / "" mean "not given".
    width: int = 0
    height: int = 0
    alt: str = ""
    title: str = ""


@dataclass(frozen=True)
class Success:
    absolute_path: str
    mime_type: str

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    status_code: int
    message_key: str
    fallback_path: str | None = None
    # Internal diagnostic tag for logs, never shown to users
    reason: str = field(default="", compare=False)

    @property
    def ok(self) -> bool:
        return False


Resolution = Union[Success, Failure]
