"""Observability helpers for instrumenting outbound service calls."""

from __future__ import annotations

import logging
import time
from functools import wraps
from typing import Callable, ParamSpec, TypeVar

from outfit_app.logging_config import correlation_context, get_logger, log_event

LOGGER = get_logger(__name__)
P = ParamSpec("P")
R = TypeVar("R")


def instrument_call(service: str, operation: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Wrap a client method to emit structured start/complete/fail logs with timings."""

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            # Reuses the caller's correlation id; a standalone call gets its own.
            with correlation_context() as correlation_id:
                start = time.perf_counter()
                log_event(
                    LOGGER,
                    logging.DEBUG,
                    "service_call_started",
                    service=service,
                    operation=operation,
                    correlation_id=correlation_id,
                )
                try:
                    result = func(*args, **kwargs)
                except Exception as exc:
                    duration_ms = round((time.perf_counter() - start) * 1000, 2)
                    log_event(
                        LOGGER,
                        logging.WARNING,
                        "service_call_failed",
                        service=service,
                        operation=operation,
                        correlation_id=correlation_id,
                        duration_ms=duration_ms,
                        error_type=type(exc).__name__,
                        error=str(exc),
                    )
                    raise
                duration_ms = round((time.perf_counter() - start) * 1000, 2)
                log_event(
                    LOGGER,
                    logging.INFO,
                    "service_call_completed",
                    service=service,
                    operation=operation,
                    correlation_id=correlation_id,
                    duration_ms=duration_ms,
                )
                return result

        return wrapper

    return decorator


__all__ = ["instrument_call"]
