"""Observability helpers for the RollDev MCP server.

Provides:
- Correlation ID generation
- JSON structured logging
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
import uuid

from rolldev_mcp.config import ObservabilityConfig

# Extra attributes copied from LogRecord into JSON output
EXTRA_FIELDS = ("tool", "latency_ms", "status", "error", "exit_code")


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for request tracing."""
    return str(uuid.uuid4())[:8]  # Short form for readability


class JsonLogFormatter(logging.Formatter):
    """JSON structured log formatter with correlation ID support."""

    def __init__(self, include_correlation_id: bool = True):
        super().__init__()
        self.include_correlation_id = include_correlation_id

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }

        if self.include_correlation_id and hasattr(record, "correlation_id"):
            log_data["cid"] = record.correlation_id

        for name in EXTRA_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        if record.exc_info:
            log_data["exc"] = self.formatException(record.exc_info)

        return json.dumps(log_data, separators=(",", ":"))


def setup_logging(config: ObservabilityConfig, logger_name: str = "rolldev-mcp") -> logging.Logger:
    """Configure logging based on observability settings.

    Args:
        config: Observability configuration
        logger_name: Name of logger to configure

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    logger.handlers.clear()

    level = getattr(logging, config.log_level.upper(), logging.INFO)
    logger.setLevel(level)

    # stderr only; stdout carries the MCP stream
    handler = logging.StreamHandler()
    handler.setLevel(level)

    if config.log_format == "json":
        handler.setFormatter(JsonLogFormatter(
            include_correlation_id=config.include_correlation_id
        ))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        ))

    logger.addHandler(handler)
    logger.propagate = False

    return logger
