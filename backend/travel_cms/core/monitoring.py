"""
Logging setup and performance tracking.
"""

import time
from typing import Callable, Any, Dict
from functools import wraps
import logging
import json
from datetime import datetime
import asyncio

logger = logging.getLogger(__name__)


class JSONFormatter(logging.Formatter):
    """One JSON object per log line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        duration_ms = getattr(record, "duration_ms", None)
        if duration_ms is not None:
            log_data["duration_ms"] = duration_ms
        return json.dumps(log_data)


def build_logging_config(level: str, log_format: str = "text") -> Dict[str, Any]:
    """dictConfig payload for the app, uvicorn and sqlalchemy loggers."""
    formatter = "json" if log_format == "json" else "detailed"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
            },
            "json": {"()": JSONFormatter},
        },
        "handlers": {
            "default": {
                "formatter": formatter,
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "travel_cms": {"handlers": ["default"], "level": level},
            "uvicorn": {"handlers": ["default"], "level": "INFO"},
            "sqlalchemy": {"handlers": ["default"], "level": "WARNING"},
        },
    }


def track_performance(operation_name: str):
    """Log how long the wrapped call took (sync or async)."""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                logger.error(f"{operation_name} failed after {elapsed:.0f}ms: {e}")
                raise
            elapsed = (time.perf_counter() - start) * 1000
            logger.info(f"{operation_name} completed in {elapsed:.0f}ms",
                        extra={"duration_ms": round(elapsed)})
            return result

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                logger.error(f"{operation_name} failed after {elapsed:.0f}ms: {e}")
                raise
            elapsed = (time.perf_counter() - start) * 1000
            logger.debug(f"{operation_name} completed in {elapsed:.0f}ms",
                         extra={"duration_ms": round(elapsed)})
            return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
