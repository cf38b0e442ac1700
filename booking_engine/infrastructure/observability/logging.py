"""
Structured logging setup for the booking decision engine.
Provides JSON-formatted logs with consistent fields for production monitoring.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging with JSON output for production.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            _add_trace_context,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )


def _add_trace_context(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Bind request-scoped context (e.g. request_id) set via structlog.contextvars."""
    event_dict.update(structlog.contextvars.get_contextvars())
    return event_dict


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


# Convenience functions for common log patterns
def log_transition(
    booking_id: str,
    from_status: str | None,
    to_status: str,
    actor_id: str | None = None,
    automatic: bool = False,
):
    """Log a booking status change with consistent fields."""
    logger = get_logger("booking.transitions")

    log_data = {
        "booking_id": booking_id,
        "from_status": from_status,
        "to_status": to_status,
        "automatic": automatic,
        "event_type": "booking_transition",
    }

    if actor_id:
        log_data["actor_id"] = actor_id

    logger.info("Booking status changed", **log_data)


def log_route_optimization(
    date: str,
    stops: int,
    excluded: int,
    distance_meters: float,
    distance_saved_meters: float,
    duration_ms: float,
):
    """Log a route optimization run with consistent fields."""
    logger = get_logger("booking.routing")

    log_data = {
        "date": date,
        "stops": stops,
        "excluded": excluded,
        "distance_meters": round(distance_meters, 1),
        "distance_saved_meters": round(distance_saved_meters, 1),
        "duration_ms": duration_ms,
        "event_type": "route_optimization",
    }

    if excluded:
        logger.warning("Route optimized with excluded stops", **log_data)
    else:
        logger.info("Route optimized", **log_data)
