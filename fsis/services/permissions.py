"""
Role-based permission checks.

Rights are granted per role, the way a wiki grants rights to user groups:

    ROLE_RIGHTS='{"*": ["fsis-public"], "user": ["fsis-view"], "staff": "fsis-view,fsis-internal"}'

Role "*" applies to every actor including anonymous ones, role "user" to
every actor identified by an API token.
"""

import hmac
from collections.abc import Iterable, Mapping

import structlog

from fsis.core.config import TokenEntry
from fsis.core.models import ANONYMOUS, ANONYMOUS_ROLE, Actor
from fsis.services.interface import PermissionChecker

logger = structlog.get_logger()

IDENTIFIED_ROLE = "user"


class RolePermissionChecker(PermissionChecker):
    """Check rights against a static role -> rights table."""

    def __init__(self, role_rights: Mapping[str, Iterable[str]]):
        self.role_rights = {role: frozenset(rights) for role, rights in role_rights.items()}

    def effective_roles(self, actor: Actor) -> set[str]:
        roles = {ANONYMOUS_ROLE, *actor.roles}
        if not actor.is_anonymous:
            roles.add(IDENTIFIED_ROLE)
        return roles

    def rights_for(self, actor: Actor) -> frozenset[str]:
        rights: set[str] = set()
        for role in self.effective_roles(actor):
            rights |= self.role_rights.get(role, frozenset())
        return frozenset(rights)

    def has_permission(self, actor: Actor, permission: str) -> bool:
        allowed = permission in self.rights_for(actor)
        if not allowed:
            logger.debug("permission_denied", actor=actor.name, permission=permission)
        return allowed


class TokenRegistry:
    """Map bearer tokens to actors."""

    def __init__(self, tokens: Mapping[str, TokenEntry]):
        self._tokens = dict(tokens)

    def actor_for(self, token: str | None) -> Actor:
        """Return the token's actor, or the anonymous actor for unknown tokens."""
        if not token:
            return ANONYMOUS

        # Constant-time comparison against every configured token
        match: TokenEntry | None = None
        for known, entry in self._tokens.items():
            if hmac.compare_digest(known.encode(), token.encode()):
                match = entry

        if match is None:
            logger.info("unknown_api_token")
            return ANONYMOUS

        return Actor(name=match.name, roles=tuple(match.roles))
