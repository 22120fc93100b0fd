"""
Structured logging for the webhook service.

Every record, whether it comes from structlog or from a pipeline module's
stdlib logger, goes through the same processor chain. The webhook endpoint
binds ``event``, ``agent_id`` and ``event_id`` as contextvars, so all lines
emitted while an event is processed carry them.
"""

import logging
import sys
from typing import Any, List, MutableMapping, Optional

import structlog

from .config import Settings, settings

SERVICE_NAME = "agent-swap-webhook"

QUIET_LOGGERS = ("uvicorn.access", "httpcore", "httpx")


def _service_stamp(mock_mode: bool) -> structlog.types.Processor:
    def stamp(_logger: Any, _method: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
        event_dict.setdefault("service", SERVICE_NAME)
        if mock_mode:
            event_dict["mock_mode"] = True
        return event_dict

    return stamp


def build_processors(app_settings: Settings) -> List[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _service_stamp(app_settings.mock_mode),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging(app_settings: Settings = settings, log_level: Optional[str] = None) -> logging.Handler:
    """Route structlog and stdlib logging to stdout.

    ``log_format`` selects JSON lines (default) or the colored console
    renderer. Returns the installed root handler.
    """
    level = getattr(logging, (log_level or app_settings.log_level).upper(), logging.INFO)
    processors = build_processors(app_settings)

    if app_settings.log_format.lower() == "console":
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer()
    else:
        processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler
