"""
Centralized logging and error classification for the LLM gateway.

This module provides decorators and helpers that standardize how operations
are logged, so the client and its consumers report failures consistently.

Features:
- Structured logging with contextual information
- Operation timing for decorated coroutines and context blocks
- Error classification into log categories (timeout vs upstream vs transport)
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, ParamSpec, TypeVar

import structlog
from pydantic import ValidationError

from llm_gateway.llm.exceptions import (
    ConfigurationError,
    LLMTimeoutError,
    RequestCancelledError,
    TransportError,
    UpstreamAPIError,
)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(colors=True),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

# Type variables for generic decorators
P = ParamSpec("P")
T = TypeVar("T")
AsyncCallable = Callable[P, Awaitable[T]]

logger = structlog.get_logger(__name__)


def configure_logging(config: dict[str, Any] | None = None) -> None:
    """Set the stdlib root level from the ``logging`` config section."""
    level_name = str((config or {}).get("level", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO), format="%(message)s"
    )


class GatewayErrorHandler:
    """Error classification with structured logging."""

    @staticmethod
    def classify_error(error: BaseException) -> str:
        """
        Classify an error into a log category.

        Args:
            error: The exception to classify

        Returns:
            Category name used in structured logs
        """
        if isinstance(error, ConfigurationError):
            return "configuration_error"
        if isinstance(error, LLMTimeoutError | TimeoutError):
            return "timeout_error"
        if isinstance(error, UpstreamAPIError):
            return "upstream_error"
        if isinstance(error, RequestCancelledError | asyncio.CancelledError):
            return "cancelled"
        if isinstance(error, TransportError | ConnectionError | OSError):
            return "transport_error"
        if isinstance(error, ValidationError | ValueError | TypeError):
            return "validation_error"
        return "unknown_error"

    @staticmethod
    def log_error(
        error: BaseException,
        operation: str,
        context: dict[str, Any] | None = None,
    ) -> str:
        """
        Log an error with its category and the upstream details it carries.

        Returns:
            The category the error was classified as
        """
        category = GatewayErrorHandler.classify_error(error)
        details: dict[str, Any] = {}
        if isinstance(error, UpstreamAPIError):
            details = {"upstream_code": error.code, "status_code": error.status_code}
        elif isinstance(error, LLMTimeoutError):
            details = {"phase": error.phase.value, "timeout_s": error.timeout}

        logger.error(
            "Operation failed",
            operation=operation,
            error_type=type(error).__name__,
            error_category=category,
            error_message=str(error),
            **details,
            **(context or {}),
        )
        return category


def log_operation(
    operation: str,
    *,
    context: dict[str, Any] | None = None,
) -> Callable[[AsyncCallable[P, T]], AsyncCallable[P, T]]:
    """
    Decorator for logging async operations with structured context.

    Args:
        operation: Description of the operation being performed
        context: Additional context to include in logs

    Returns:
        Decorated function with logging
    """
    def decorator(func: AsyncCallable[P, T]) -> AsyncCallable[P, T]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            operation_logger = logger.bind(
                operation=operation,
                function=func.__name__,
                **(context or {}),
            )

            operation_logger.debug("Operation started")
            start_time = time.perf_counter()

            try:
                result = await func(*args, **kwargs)

                operation_logger.info(
                    "Operation completed successfully",
                    duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                )
                return result

            except Exception as e:
                error_log_data: dict[str, Any] = {
                    "error_type": type(e).__name__,
                    "error_category": GatewayErrorHandler.classify_error(e),
                    "error_message": str(e),
                    "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
                }

                operation_logger.error("Operation failed", **error_log_data)
                raise

        return wrapper
    return decorator


@asynccontextmanager
async def operation_context(
    operation: str,
    *,
    context: dict[str, Any] | None = None,
):
    """
    Async context manager for operation logging.

    Args:
        operation: Description of the operation
        context: Additional context for logging

    Yields:
        Bound logger for the operation
    """
    operation_logger = logger.bind(
        operation=operation,
        **(context or {}),
    )

    operation_logger.info("Operation started")
    start_time = time.perf_counter()

    try:
        yield operation_logger

        operation_logger.info(
            "Operation completed successfully",
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )

    except Exception as e:
        error_log_data: dict[str, Any] = {
            "error_type": type(e).__name__,
            "error_category": GatewayErrorHandler.classify_error(e),
            "error_message": str(e),
            "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
        }

        operation_logger.error("Operation failed", **error_log_data)
        raise
