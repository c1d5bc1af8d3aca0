"""Public observability primitives: JSON-lines run logging and the structlog bridge."""

from cda.observability.logging import (
    LoggingConfig,
    StructuredLoggingHandle,
    configure_structlog,
    correlation_scope,
    setup_structured_logging,
    shutdown_logging,
)

__all__ = [
    "LoggingConfig",
    "StructuredLoggingHandle",
    "configure_structlog",
    "correlation_scope",
    "setup_structured_logging",
    "shutdown_logging",
]
