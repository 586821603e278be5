"""structlog setup shared by the API, the CLI and the pipeline."""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

import structlog


def _add_ts(_: Any, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    event_dict.setdefault(
        "ts", datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    )
    return event_dict


def _add_service(service_name: str):
    def _inner(_: Any, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return _inner


_SECRET_KEYS = {"api_key", "apikey", "authorization", "token", "openai_api_key", "news_api_key"}


def _redact_secrets(_: Any, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    for key in list(event_dict.keys()):
        if str(key).lower() in _SECRET_KEYS:
            event_dict[key] = "***redacted***"
    return event_dict


_logger: structlog.BoundLogger | None = None


def configure_logging(service_name: str = "api", *, level: str | int = logging.INFO) -> None:
    """Configure one global structlog stack rendering JSON lines to stderr."""
    global _logger

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr, force=True)

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            _add_ts,
            _add_service(service_name),
            _redact_secrets,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        # sys.stderr is looked up on every call.
        logger_factory=lambda *args: structlog.PrintLogger(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
    _logger = structlog.get_logger()


def get_logger() -> structlog.BoundLogger:
    """Return the shared logger, configuring it for the API service on first use."""
    if _logger is None:
        configure_logging("api")
    return _logger
