"""
Structured logging for the operator using structlog.

Every reconcile cycle logs through a logger bound to the managed resource
(``resource_logger``), so each event carries namespace, name and resource
type. JSON is rendered inside the cluster and in production, a colored
console format everywhere else.
"""
import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from mongodb_operator.config.settings import settings

# Chatty client libraries, kept at WARNING
QUIET_LOGGERS = ("kubernetes_asyncio", "aiohttp", "openshift", "uvicorn.access")


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add operator identity to log events."""
    event_dict["app"] = settings.app_name
    event_dict["version"] = settings.app_version
    event_dict["environment"] = settings.environment
    return event_dict


def add_severity_level(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add severity level for Google Cloud Logging compatibility."""
    if "level" in event_dict:
        event_dict["severity"] = event_dict["level"].upper()
    return event_dict


def add_resource_reference(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add a ``resource`` key such as ``StatefulSet/ns/db-0``.

    Only events bound through ``resource_logger`` carry all three parts.
    """
    parts = [event_dict.get(key) for key in ("resource_type", "namespace", "name")]
    if all(parts):
        event_dict["resource"] = "/".join(parts)
    return event_dict


def use_json_output() -> bool:
    """JSON unless explicitly disabled, when in-cluster or in production."""
    if settings.log_json is not None:
        return settings.log_json
    return settings.k8s_in_cluster or settings.is_production


def configure_logging() -> None:
    """Configure structlog and the standard library bridge."""

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_app_context,
        add_severity_level,
        add_resource_reference,
    ]

    if use_json_output():
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [structlog.processors.format_exc_info, renderer],  # type: ignore
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
    )

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a configured structlog logger.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def resource_logger(
    name: str,
    namespace: str,
    resource_type: str,
    logger: Any = None,
) -> structlog.stdlib.BoundLogger:
    """
    Bind the identity of a managed resource onto a logger.

    Args:
        name: Resource name
        namespace: Resource namespace
        resource_type: Kind, e.g. "StatefulSet"
        logger: Base logger, the operator's root logger if omitted

    Returns:
        Bound logger
    """
    base = logger if logger is not None else get_logger("mongodb_operator")
    return base.bind(namespace=namespace, name=name, resource_type=resource_type)
