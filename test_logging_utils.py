#!/usr/bin/env python3
"""
Test script for logging utilities.

This validates that the centralized logging and error classification works correctly.
"""

import asyncio

import pytest
from pydantic import ValidationError

from llm_gateway import logging_utils
from llm_gateway.llm.exceptions import (
    ConfigurationError,
    LLMTimeoutError,
    RequestCancelledError,
    TimeoutPhase,
    TransportError,
    UpstreamAPIError,
)
from llm_gateway.logging_utils import (
    GatewayErrorHandler,
    log_operation,
    operation_context,
)


class _RecordingLogger:
    """Stand-in for the module logger that keeps bound context and events."""

    def __init__(self):
        self.bound = {}
        self.events = []

    def bind(self, **kwargs):
        self.bound.update(kwargs)
        return self

    def _record(self, event, **kwargs):
        self.events.append((event, kwargs))

    debug = info = error = _record


class TestGatewayErrorHandler:
    """Test the GatewayErrorHandler class."""

    @pytest.mark.parametrize(
        "error,category",
        [
            (ConfigurationError("no key"), "configuration_error"),
            (LLMTimeoutError(1.0, TimeoutPhase.READ), "timeout_error"),
            (TimeoutError("plain"), "timeout_error"),
            (UpstreamAPIError("bad key", code="AUTH", status_code=401), "upstream_error"),
            (RequestCancelledError(), "cancelled"),
            (asyncio.CancelledError(), "cancelled"),
            (TransportError("No response body"), "transport_error"),
            (ConnectionError("refused"), "transport_error"),
            (ValueError("bad"), "validation_error"),
            (RuntimeError("?"), "unknown_error"),
        ],
    )
    def test_classify_error(self, error, category):
        assert GatewayErrorHandler.classify_error(error) == category

    def test_classify_validation_error(self):
        """Test classification of ValidationError."""
        validation_error = ValidationError.from_exception_data(
            "ValidationError", [{"type": "missing", "loc": ("field",), "input": {}}]
        )
        assert GatewayErrorHandler.classify_error(validation_error) == "validation_error"

    def test_timeout_is_not_an_upstream_error(self):
        """Timeouts and upstream rejections must stay distinguishable."""
        timeout = LLMTimeoutError(30.0, TimeoutPhase.CONNECT)
        assert not isinstance(timeout, UpstreamAPIError)
        assert isinstance(timeout, TimeoutError)

    def test_log_error_returns_category(self):
        error = UpstreamAPIError("slow down", code="RATE", status_code=429)
        assert GatewayErrorHandler.log_error(error, "relay", {"user_id": "u1"}) == "upstream_error"


class TestDecorators:
    """Test logging decorators."""

    @pytest.mark.asyncio
    async def test_log_operation_success(self):
        """Test log_operation decorator with successful function."""

        @log_operation("test_operation")
        async def successful_function():
            return "success"

        result = await successful_function()
        assert result == "success"

    @pytest.mark.asyncio
    async def test_log_operation_with_error(self):
        """Test log_operation decorator with function that raises error."""

        @log_operation("test_operation")
        async def failing_function():
            raise ValueError("Test error")

        with pytest.raises(ValueError, match="Test error"):
            await failing_function()

    @pytest.mark.asyncio
    async def test_log_operation_preserves_metadata(self):
        @log_operation("test_operation")
        async def documented(value):
            """Docstring survives wrapping."""
            return value * 2

        assert documented.__name__ == "documented"
        assert documented.__doc__ == "Docstring survives wrapping."
        assert await documented(21) == 42

    @pytest.mark.asyncio
    async def test_log_operation_binds_context(self, monkeypatch):
        recorder = _RecordingLogger()
        monkeypatch.setattr(logging_utils, "logger", recorder)

        @log_operation("chat_completion", context={"provider": "openrouter"})
        async def call():
            return "ok"

        assert await call() == "ok"
        assert recorder.bound == {
            "operation": "chat_completion",
            "function": "call",
            "provider": "openrouter",
        }
        event, fields = recorder.events[-1]
        assert event == "Operation completed successfully"
        assert fields["duration_ms"] >= 0

    @pytest.mark.asyncio
    async def test_operation_context_success(self):
        async with operation_context("ctx_operation", context={"k": "v"}) as log:
            log.info("inside")

    @pytest.mark.asyncio
    async def test_operation_context_reraises(self):
        with pytest.raises(UpstreamAPIError):
            async with operation_context("ctx_operation"):
                raise UpstreamAPIError("nope", code="X", status_code=400)
