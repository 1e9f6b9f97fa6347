"""
Structured logging configuration using structlog.

JSON lines by default, colored console output at DEBUG. Every record carries
the Garden network, and credentials or signatures are masked before rendering.
"""

import logging
import sys
from typing import Any, MutableMapping, Optional

import structlog

from .config import settings

# Event keys that must never reach a log sink verbatim
SENSITIVE_KEYS = frozenset({"garden-app-id", "garden_app_id", "app_id", "signature", "authorization"})

NOISY_LOGGERS = ("uvicorn.access", "httpcore", "httpx")


def _mask(value: Any) -> str:
    text = str(value)
    return f"{text[:4]}***" if len(text) > 8 else "***"


def redact_secrets(_logger: Any, _method: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    for key in list(event_dict):
        if key.lower() in SENSITIVE_KEYS:
            event_dict[key] = _mask(event_dict[key])
    headers = event_dict.get("headers")
    if isinstance(headers, dict):
        event_dict["headers"] = {
            name: _mask(value) if name.lower() in SENSITIVE_KEYS else value
            for name, value in headers.items()
        }
    return event_dict


def add_network(_logger: Any, _method: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    event_dict.setdefault("network", settings.garden_network)
    return event_dict


def setup_logging(log_level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        log_level: Override log level (default: from settings.log_level)
        json_logs: Force JSON (True) or console (False) output; by default
            console is used only at DEBUG
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    use_json = level != logging.DEBUG if json_logs is None else json_logs

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_network,
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if use_json:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # logging.getLogger(__name__) records go through the same chain
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
