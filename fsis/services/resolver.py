"""
Secure File Resolver - turns an untrusted (group, filename) pair into a
validated file path or a typed failure.

Checks run in a fixed order and the first one that fails decides the outcome:

1. Group lookup                        -> 400 unknown-group
2. Permission (direct requests only)   -> 403 unauthorized
3. Canonicalization + containment      -> 404 unknown-file (+ fallback)
4. Readability / regular file          -> 500 unknown-file (+ fallback)
5. MIME allow-list                     -> 500 unknown-file (+ fallback)

Traversal attempts and missing files produce the same user-visible result;
only the internal ``reason`` (logged) tells them apart.
"""

import os
from collections.abc import Mapping
from pathlib import Path

import structlog

from fsis.core.config import GroupConfig
from fsis.core.exceptions import (
    DisallowedMimeTypeError,
    ResolutionError,
    UnauthorizedError,
    UnknownGroupError,
    UnknownOrTraversalFileError,
    UnreadableFileError,
)
from fsis.core.models import Failure, Resolution, ResolutionRequest, Success
from fsis.services.interface import MimeDetector, PermissionChecker

logger = structlog.get_logger()

# Errors Path.resolve(strict=True) raises for missing files, symlink loops,
# untraversable components and embedded NUL bytes
_CANONICALIZE_ERRORS = (OSError, RuntimeError, ValueError)


class SecureFileResolver:
    """Resolve files inside configured group directories."""

    def __init__(
        self,
        groups: Mapping[str, GroupConfig],
        permissions: PermissionChecker,
        mime_detector: MimeDetector,
    ):
        self.groups = dict(groups)
        self.permissions = permissions
        self.mime_detector = mime_detector
        self._base_cache: dict[str, Path] = {}

    def resolve(self, request: ResolutionRequest) -> Resolution:
        """Resolve a request. Never raises; every problem becomes a ``Failure``."""
        config = self.groups.get(request.group)

        try:
            path, mime_type = self._resolve(request, config)
        except ResolutionError as e:
            fallback = config.fallback_path if config is not None and e.uses_fallback else None
            self._log_failure(request, e)
            return Failure(
                status_code=e.status_code,
                message_key=e.message_key,
                fallback_path=fallback,
                reason=e.reason,
            )
        except Exception as e:
            logger.error(
                "resolution_internal_error",
                group=request.group,
                filename=request.filename[:200],
                error=str(e),
                exc_info=True,
            )
            return Failure(
                status_code=500,
                message_key="unknown-file",
                fallback_path=config.fallback_path if config is not None else None,
                reason="internal_error",
            )

        return Success(absolute_path=str(path), mime_type=mime_type)

    def _resolve(
        self,
        request: ResolutionRequest,
        config: GroupConfig | None,
    ) -> tuple[Path, str]:
        if config is None:
            raise UnknownGroupError(f"Unknown group {request.group!r}")

        # Embedded references point back at the direct-fetch URL, which re-checks
        if config.required_permission and not request.is_embedded:
            if not self.permissions.has_permission(request.actor, config.required_permission):
                raise UnauthorizedError(
                    f"Actor lacks right {config.required_permission!r}",
                    details={"actor": request.actor.name},
                )

        base = self.canonical_base(request.group)
        path = self.canonicalize(base, request.filename)

        if not os.access(path, os.R_OK):
            raise UnreadableFileError(f"File is not readable: {path}")

        if not path.is_file():
            raise UnreadableFileError(f"Not a regular file: {path}", reason="not_a_file")

        mime_type = self.mime_detector.detect(str(path))
        if mime_type not in config.allowed_mime_types:
            raise DisallowedMimeTypeError(
                f"MIME type {mime_type!r} not allowed",
                details={"mime_type": mime_type},
            )

        return path, mime_type

    def canonical_base(self, group: str) -> Path:
        """Canonical base directory of a group, computed once per group.

        Raises:
            UnknownOrTraversalFileError: If the base directory is unavailable
        """
        cached = self._base_cache.get(group)
        if cached is not None:
            return cached

        config = self.groups[group]
        try:
            base = Path(config.base_path).resolve(strict=True)
        except _CANONICALIZE_ERRORS as e:
            raise UnknownOrTraversalFileError(
                f"Base directory unavailable: {config.base_path}",
                reason="base_unavailable",
                details={"error": str(e)},
            ) from e

        if not base.is_dir():
            raise UnknownOrTraversalFileError(
                f"Base path is not a directory: {base}",
                reason="base_unavailable",
            )

        # Failures are not cached so a directory mounted later is picked up
        self._base_cache[group] = base
        return base

    @staticmethod
    def canonicalize(base: Path, filename: str) -> Path:
        """Canonicalize ``base/filename`` and require it to lie strictly inside ``base``.

        Containment is checked on path components, so ``/data/img2/x`` is not
        inside ``/data/img`` and ``base`` itself is rejected.

        Raises:
            UnknownOrTraversalFileError: If the path cannot be canonicalized or escapes
        """
        try:
            candidate = Path(f"{base}/{filename}").resolve(strict=True)
        except _CANONICALIZE_ERRORS as e:
            raise UnknownOrTraversalFileError(
                "File does not exist or cannot be traversed",
                details={"error": str(e)},
            ) from e

        if candidate == base or base not in candidate.parents:
            raise UnknownOrTraversalFileError(
                f"Resolved path escapes base directory: {candidate}",
                reason="outside_base",
            )

        return candidate

    def _log_failure(self, request: ResolutionRequest, error: ResolutionError) -> None:
        log = logger.bind(
            group=request.group,
            filename=request.filename[:200],
            embedded=request.is_embedded,
            reason=error.reason,
            status_code=error.status_code,
        )

        if error.reason == "outside_base":
            log.warning("resolution_outside_base", detail=error.message)
        elif error.reason == "base_unavailable":
            log.error("resolution_base_unavailable", detail=error.message, **error.details)
        elif error.status_code >= 500:
            log.warning("resolution_rejected", detail=error.message, **error.details)
        else:
            log.info("resolution_failed", detail=error.message)
