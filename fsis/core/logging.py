"""
Wide-event logging for the file server.

One canonical log line per request, built up while the request runs:
- HTTP context, set by the middleware
- Actor and resolution context, added by the file routes
- Status, duration and error, added on completion

A fallback answers HTTP 200 for a failed resolution, so the log level and
the sampling decision follow the logical status recorded under ``fsis``.

References:
- https://charity.wtf/2019/02/05/logs-vs-structured-events/
- Stripe's "canonical log lines" pattern
"""

import logging
import random
import sys
import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any

import structlog
from structlog.types import EventDict, Processor

_request_event: ContextVar[dict[str, Any]] = ContextVar("request_event")
_request_start: ContextVar[float] = ContextVar("request_start", default=0.0)

_service: dict[str, str] = {
    "name": "fsis",
    "version": "dev",
    "environment": "development",
}


def logical_status(event: dict[str, Any]) -> int:
    """The worse of the HTTP status and the resolution's own status."""
    http_status = event.get("http", {}).get("status_code", 200)
    return max(http_status, event.get("fsis", {}).get("status_code", 0))


@dataclass
class TailSampler:
    """Keep every failed or slow request and a share of the rest."""

    rate: float = 0.10
    slow_ms: int = 2000

    def keep(self, event: dict[str, Any]) -> bool:
        if logical_status(event) >= 400:
            return True
        if event.get("duration_ms", 0) > self.slow_ms:
            return True
        return random.random() < self.rate


_sampler = TailSampler()


def enrich_event(**fields: Any) -> None:
    """
    Merge fields into the current request's wide event.

    Dotted keys nest: ``enrich_event(**{"fsis.group": "photos"})``.
    """
    event = _request_event.get({})
    for key, value in fields.items():
        *parents, leaf = key.split(".")
        target = event
        for part in parents:
            target = target.setdefault(part, {})
        target[leaf] = value


def init_request_event(
    request_id: str | None = None,
    method: str = "",
    path: str = "",
    client_ip: str = "",
    user_agent: str = "",
) -> dict[str, Any]:
    """Start a new wide event for the current request."""
    event = {
        "request_id": request_id or uuid.uuid4().hex[:8],
        "http": {
            "method": method,
            "path": path,
            "client_ip": client_ip,
            "user_agent": user_agent[:200] or None,
        },
        "service": dict(_service),
    }

    _request_event.set(event)
    _request_start.set(time.monotonic())
    return event


def finalize_request_event(
    status_code: int,
    error: Exception | None = None,
) -> dict[str, Any]:
    """Add status, duration and error to the wide event and return it."""
    event = _request_event.get({})

    event.setdefault("http", {})["status_code"] = status_code
    event["duration_ms"] = int((time.monotonic() - _request_start.get()) * 1000)
    event["outcome"] = "success" if logical_status(event) < 400 else "error"

    if error is not None:
        event["error"] = {
            "type": type(error).__name__,
            "message": str(error)[:500],
        }
        details = getattr(error, "details", None)
        if details:
            event["error"]["details"] = details

    return event


def emit_wide_event(event: dict[str, Any]) -> None:
    """Emit the canonical log line for a request, if the sampler keeps it."""
    if not _sampler.keep(event):
        return

    logger = structlog.get_logger("wide_event")
    status = logical_status(event)
    if status >= 500:
        logger.error("request_completed", **event)
    elif status >= 400:
        logger.warning("request_completed", **event)
    else:
        logger.info("request_completed", **event)


def _add_request_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    request_id = _request_event.get({}).get("request_id")
    if request_id:
        event_dict.setdefault("request_id", request_id)
    return event_dict


def configure_logging(
    json_logs: bool = True,
    log_level: str = "INFO",
    sample_rate: float = 0.10,
    version: str | None = None,
    environment: str | None = None,
) -> None:
    """
    Configure structlog for wide-event logging.

    Args:
        json_logs: JSON lines if True, colored console output otherwise.
        log_level: Minimum level, applied to structlog and stdlib loggers.
        sample_rate: Share of successful, fast requests whose wide event is kept.
        version: Service version stamped on every wide event.
        environment: Deployment environment stamped on every wide event.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    _sampler.rate = sample_rate
    if version:
        _service["version"] = version
    if environment:
        _service["environment"] = environment

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        _add_request_id,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_logs:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    # uvicorn logs through the stdlib
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
