"""Public observability primitives: structured JSON-lines logging with correlation fields."""

from vehicle_diagnostics.observability.logging import (
    LoggingConfig,
    StructuredLoggingHandle,
    configure_structlog,
    correlation_scope,
    get_active_logging_handle,
    get_correlation_context,
    get_logger,
    setup_logging,
    setup_structured_logging,
    shutdown_logging,
)

__all__ = [
    "LoggingConfig",
    "StructuredLoggingHandle",
    "configure_structlog",
    "correlation_scope",
    "get_active_logging_handle",
    "get_correlation_context",
    "get_logger",
    "setup_logging",
    "setup_structured_logging",
    "shutdown_logging",
]
