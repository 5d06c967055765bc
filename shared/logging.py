"""
Structured logging for the Kitchen Display Service.

Every event is rendered as a single JSON line on stdout. Request-scoped
fields (the request id and the acting user and table) are bound through
structlog's contextvars support, so any event logged while a request is
being handled carries them without being passed around explicitly.
Fields given on the log call itself take precedence over bound ones.
"""

import logging
import sys
import uuid
from typing import Any, Callable, Dict, Optional

import structlog
from structlog.contextvars import (
    bind_contextvars,
    clear_contextvars,
    get_contextvars,
    merge_contextvars,
)

Processor = Callable[[Any, str, Dict[str, Any]], Dict[str, Any]]


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Configure JSON logging for a service."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            component_tagger(service_name),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def component_tagger(service_name: str) -> Processor:
    """Tag events with the service and, for ``<service>.<component>`` loggers, the component."""

    def tag(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", service_name)
        _, _, component = event_dict.get("logger", "").partition(".")
        if component:
            event_dict["component"] = component
        return event_dict

    return tag


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind the request id, generating one when the caller sent none."""
    request_id = request_id or str(uuid.uuid4())
    bind_contextvars(request_id=request_id)
    return request_id


def get_request_id() -> Optional[str]:
    return get_contextvars().get("request_id")


def set_actor_context(user_id: Optional[str] = None, table_id: Optional[str] = None):
    """Bind the acting user and table. Missing values stay unbound."""
    actor = {key: value for key, value in (("user_id", user_id), ("table_id", table_id)) if value}
    if actor:
        bind_contextvars(**actor)


def clear_context():
    clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger; name it ``<service>.<component>``."""
    return structlog.get_logger(name)
