"""
Structured logging infrastructure for twap-ledger.
Provides consistent, machine-readable logs across all commands.

Log Structure:
    {
        "app": "twap-ledger",            # Application identifier
        "layer": "ingestion",            # Architectural layer
        "component": "csv-generator",    # Specific component
        "module": "...",                 # Python module (optional)
        "source": "node_trades",         # Domain context
        "event": "day_completed",        # What happened
        ...
    }

Architectural Layers:
    - infrastructure: Cross-cutting (database, config, tracking file)
    - ingestion: Raw data acquisition and parsing (S3 archives, parsers, CSV generation)
    - pipeline: Orchestration (staged import, daily sync, leaderboard)
    - storage: Data persistence (repositories, staging tables)
"""

import logging
import sys
from typing import Any, Literal

import structlog
from structlog.types import EventDict

# Layers a logger can be bound to
Layer = Literal["infrastructure", "ingestion", "pipeline", "storage"]


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add application-wide context to every log entry.

    Lets aggregated logs from several jobs (generation, import, sync) be
    filtered by application.
    """
    event_dict["app"] = "twap-ledger"
    return event_dict


def add_severity_level(
    logger: Any, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Copy the level into "severity" for log collectors that key on it.
    Unknown levels map to INFO.
    """
    level = event_dict.get("level")
    if level:
        severity_map = {
            "debug": "DEBUG",
            "info": "INFO",
            "warning": "WARNING",
            "error": "ERROR",
            "critical": "CRITICAL",
        }
        event_dict["severity"] = severity_map.get(level, "INFO")
    return event_dict


def setup_logging(
    level: str = "INFO",
    json_logs: bool = True,
    include_timestamp: bool = True,
) -> None:
    """
    Configure structlog and the stdlib root logger for a CLI run.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, output JSON. If False, use human-readable format (dev mode).
        include_timestamp: Whether to include ISO timestamps in logs

    Usage:
        >>> from twap_ledger.infrastructure.observability import setup_logging
        >>> setup_logging(level="DEBUG", json_logs=False)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    # stdlib handlers carry both structlog events and plain logger messages
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    # Build processor chain
    processors = [
        structlog.contextvars.merge_contextvars,
        add_app_context,
        structlog.stdlib.add_log_level,
        add_severity_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(
    name: str | None = None,
    layer: Layer | None = None,
    component: str | None = None,
    **initial_context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance with architectural context.

    Args:
        name: Logger name (typically __name__ of the calling module)
        layer: Architectural layer (infrastructure, ingestion, pipeline, storage)
        component: Specific component within the layer
        **initial_context: Additional context key-value pairs to bind to logger

    Returns:
        Configured structlog logger with bound context

    Usage:
        >>> log = get_logger(
        ...     __name__,
        ...     layer="ingestion",
        ...     component="csv-generator",
        ...     source="node_trades"
        ... )
        >>> log.info("day_completed", trades=1200)
    """
    logger = structlog.get_logger(name)

    context = {}

    if layer:
        context["layer"] = layer

    if component:
        context["component"] = component

    if name:
        context["module"] = name

    context.update(initial_context)

    if context:
        logger = logger.bind(**context)

    return logger


# ============================================================================
# Layer-Specific Logger Factories
# ============================================================================


def get_infrastructure_logger(
    component: str,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for infrastructure layer (database, config, tracking file).

    Usage:
        >>> log = get_infrastructure_logger("tracking-file", path=".last_trade_id")
        >>> log.info("checkpoint_written", last_id=1200)
    """
    return get_logger(
        "infrastructure",
        layer="infrastructure",
        component=component,
        **context,
    )


def get_ingestion_logger(
    component: str,
    source: str | None = None,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for ingestion layer (archives, parsers, CSV generation).

    Args:
        component: Component name (e.g., "csv-generator", "s3-archive")
        source: Raw data source (e.g., "node_trades") - optional
        **context: Additional context (day, file, etc.)
    """
    ctx = {}
    if source:
        ctx["source"] = source
    ctx.update(context)

    return get_logger(
        "ingestion",
        layer="ingestion",
        component=component,
        **ctx,
    )


def get_pipeline_logger(
    component: str = "staged-import",
    run_id: str | None = None,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for pipeline layer (staged import, daily sync, leaderboard).

    Usage:
        >>> log = get_pipeline_logger("staged-import", phase="verify_no_conflict")
        >>> log.info("phase_started")
    """
    ctx = {}
    if run_id:
        ctx["run_id"] = run_id
    ctx.update(context)

    return get_logger(
        "pipeline",
        layer="pipeline",
        component=component,
        **ctx,
    )


def get_storage_logger(
    component: str,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for storage layer (repositories).

    Usage:
        >>> log = get_storage_logger("staging-repository", table="trades_staging")
        >>> log.info("copy_completed", rows=1000)
    """
    return get_logger(
        "storage",
        layer="storage",
        component=component,
        **context,
    )


def get_database_logger(**context: Any) -> structlog.stdlib.BoundLogger:
    """
    Convenience alias for database logging (maps to infrastructure layer).

    Usage:
        >>> log = get_database_logger(dsn_variant="session-pooler")
        >>> log.info("pool_created")
    """
    return get_infrastructure_logger("database-adapter", **context)
