"""
Response Renderer - turns a ``Resolution`` into the outgoing response.

| Resolution | Embedded                  | Direct                                  |
|------------|---------------------------|-----------------------------------------|
| Success    | <a><img></a> fragment     | file bytes + private cache headers      |
| Failure    | escaped errorbox fragment | fallback bytes (status 200) or text/plain |

A failure with a fallback file is answered with the fallback's bytes and the
default 200 status; wiki pages embedding the URL keep showing an image.
"""

import html
import os
import time
from collections.abc import Mapping
from email.utils import formatdate

import structlog
from starlette.responses import FileResponse, HTMLResponse, PlainTextResponse, Response

from fsis.core.models import Failure, Resolution, ResolutionRequest, Success
from fsis.services.interface import Localizer, MimeDetector, ResponseSink

logger = structlog.get_logger()


class StarletteResponseSink(ResponseSink):
    """Build Starlette responses."""

    def html(self, fragment: str) -> Response:
        return HTMLResponse(fragment)

    def file(
        self,
        path: str,
        media_type: str,
        headers: Mapping[str, str] | None = None,
    ) -> Response:
        # FileResponse streams the file and sets Content-Length from stat()
        return FileResponse(path, media_type=media_type, headers=dict(headers or {}))

    def text(self, status_code: int, body: str) -> Response:
        return PlainTextResponse(body, status_code=status_code)


def render_attributes(attributes: list[tuple[str, str | int | None]]) -> str:
    """Render HTML attributes, skipping empty, zero and negative values."""
    parts = []
    for name, value in attributes:
        if value is None or value == "":
            continue
        if isinstance(value, int) and value <= 0:
            continue
        parts.append(f' {name}="{html.escape(str(value), quote=True)}"')
    return "".join(parts)


class ResponseRenderer:
    """Render resolutions through a ``ResponseSink``."""

    def __init__(
        self,
        sink: ResponseSink,
        localizer: Localizer,
        mime_detector: MimeDetector,
        cache_max_age: int = 3600,
    ):
        self.sink = sink
        self.localizer = localizer
        self.mime_detector = mime_detector
        self.cache_max_age = cache_max_age

    def render(
        self,
        request: ResolutionRequest,
        resolution: Resolution,
        self_url: str,
        language: str | None = None,
    ):
        if isinstance(resolution, Success):
            if request.is_embedded:
                return self.sink.html(self.image_link(request, self_url))
            return self.sink.file(
                resolution.absolute_path,
                resolution.mime_type,
                headers=self.cache_headers(),
            )
        return self.render_failure(request, resolution, language)

    def render_failure(
        self,
        request: ResolutionRequest,
        failure: Failure,
        language: str | None = None,
    ):
        message = self.localizer.message(failure.message_key, language)

        if request.is_embedded:
            return self.sink.html(f'<div class="errorbox">{html.escape(message)}</div>')

        if failure.fallback_path:
            response = self.serve_fallback(failure.fallback_path)
            if response is not None:
                return response

        return self.sink.text(failure.status_code, message)

    def serve_fallback(self, path: str):
        """Stream the fallback file, or return None if it cannot be served."""
        if not os.path.isfile(path) or not os.access(path, os.R_OK):
            logger.error("fallback_unavailable", path=path)
            return None

        mime_type = self.mime_detector.detect(path)
        return self.sink.file(path, mime_type)

    def image_link(self, request: ResolutionRequest, url: str) -> str:
        """``<a href=URL><img ... src=URL></a>`` with only the hints that were given."""
        img_attributes = render_attributes([
            ("width", request.width),
            ("height", request.height),
            ("alt", request.alt),
            ("title", request.title),
            ("src", url),
        ])
        href = html.escape(url, quote=True)
        return f'<a href="{href}"><img{img_attributes}></a>'

    def cache_headers(self) -> dict[str, str]:
        return {
            "Cache-Control": f"private, max-age={self.cache_max_age}",
            "Expires": formatdate(time.time() + self.cache_max_age, usegmt=True),
        }
