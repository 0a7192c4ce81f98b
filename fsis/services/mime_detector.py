"""
MIME Detector - sniffs file content with libmagic and refines the result
from the file extension.

Content sniffing is authoritative. The extension is only consulted when the
sniffed type is too generic to be useful, e.g. an SVG that libmagic reports
as ``text/plain`` or ``text/xml``.
"""

import mimetypes
from pathlib import Path

import magic
import structlog

from fsis.services.interface import MimeDetector

logger = structlog.get_logger()


def _is_text_like(mime_type: str) -> bool:
    return (
        mime_type.startswith("text/")
        or mime_type.endswith(("+xml", "/xml", "/json"))
    )


def _is_zip_based(mime_type: str) -> bool:
    return mime_type.startswith("application/vnd.") or mime_type.endswith("+zip")


def _is_opaque(mime_type: str) -> bool:
    """Types libmagic has no signature for, so an unrecognised sniff is expected.

    Images, media, fonts, PDFs, archives and text all carry signatures or
    recognisable content; unknown bytes named after one of them are rejected.
    """
    if mime_type.startswith(("image/", "audio/", "video/", "font/", "model/")):
        return False
    if _is_text_like(mime_type) or _is_zip_based(mime_type):
        return False
    return mime_type not in SNIFFABLE_APPLICATION_TYPES


# Application types libmagic identifies from content
SNIFFABLE_APPLICATION_TYPES = frozenset({
    "application/pdf",
    "application/zip",
    "application/gzip",
    "application/x-tar",
    "application/x-bzip2",
    "application/x-xz",
    "application/x-7z-compressed",
    "application/x-rar-compressed",
    "application/postscript",
    "application/x-shockwave-flash",
    "application/x-executable",
    "application/x-sharedlib",
    "application/wasm",
})

# Sniffed types that say little about what the file actually is, mapped to a
# check on the extension type that may replace them. A text file named
# "x.png" stays text/plain; an SVG sniffed as text/xml becomes image/svg+xml;
# unrecognised bytes named "x.png" stay application/octet-stream. Empty files
# are never refined.
GENERIC_TYPES = {
    "text/plain": _is_text_like,
    "text/xml": _is_text_like,
    "application/xml": _is_text_like,
    "application/zip": _is_zip_based,
    "application/octet-stream": _is_opaque,
    "unknown/unknown": _is_opaque,
}

UNKNOWN_TYPE = "application/octet-stream"


class MagicMimeDetector(MimeDetector):
    """Detect MIME types with libmagic plus extension-based refinement."""

    # Extensions whose type is missing from some platforms' mime.types
    EXTRA_TYPES = {
        ".svg": "image/svg+xml",
        ".svgz": "image/svg+xml",
        ".webp": "image/webp",
        ".avif": "image/avif",
    }

    def __init__(self, extra_types: dict[str, str] | None = None):
        self._magic = magic.Magic(mime=True)
        self._types = mimetypes.MimeTypes()
        for ext, mime_type in {**self.EXTRA_TYPES, **(extra_types or {})}.items():
            self._types.add_type(mime_type, ext)

    def detect(self, path: str) -> str:
        try:
            sniffed = self.sniff(path)
        except (magic.MagicException, OSError) as e:
            # Content unknown, so the extension alone must not decide
            logger.warning("mime_sniff_failed", path=path, error=str(e))
            return UNKNOWN_TYPE

        refined = self.improve_from_extension(sniffed, Path(path).suffix)
        if refined != sniffed:
            logger.debug("mime_refined", path=path, sniffed=sniffed, refined=refined)
        return refined

    def sniff(self, path: str) -> str:
        """Guess the type from the file's content only."""
        detected = self._magic.from_file(path)
        return (detected or UNKNOWN_TYPE).split(";")[0].strip().lower()

    def improve_from_extension(self, mime_type: str, extension: str) -> str:
        """Replace a generic sniffed type with the type implied by ``extension``."""
        accepts = GENERIC_TYPES.get(mime_type)
        if accepts is None or not extension:
            return mime_type

        by_extension, _ = self._types.guess_type(f"file{extension.lower()}", strict=False)
        if by_extension and accepts(by_extension):
            return by_extension
        return mime_type
