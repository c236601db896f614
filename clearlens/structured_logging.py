"""
Structured JSON logging for the ClearLens API.
Provides request tracing and pipeline event logging.
"""

import os
import json
import logging
import uuid
from contextvars import ContextVar
from typing import Dict, Any, Optional
from datetime import datetime, timezone
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with request context."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        # Per-task context so concurrent requests do not overwrite each other.
        self._context: ContextVar[Dict[str, Any]] = ContextVar(f"{name}_request_context", default={})

    @property
    def request_context(self) -> Dict[str, Any]:
        return self._context.get()

    @request_context.setter
    def request_context(self, value: Dict[str, Any]):
        self._context.set(value)

    def set_request_context(self, request_id: str, user_id: Optional[str] = None,
                            endpoint: Optional[str] = None, method: Optional[str] = None):
        """Set request context for tracing.

        Args:
            request_id: Unique request identifier
            user_id: Caller-supplied user id (if known yet)
            endpoint: API endpoint being called
            method: HTTP method
        """
        self.request_context = {
            "request_id": request_id,
            "user_id": user_id,
            "endpoint": endpoint,
            "method": method,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def log(self, level: str, message: str, **kwargs):
        """Log message with structured context.

        Args:
            level: Log level ('debug', 'info', 'warning', 'error', 'critical')
            message: Log message
            **kwargs: Additional fields to include in JSON
        """
        log_data = {
            "message": message,
            **self.request_context,
            **kwargs,
        }

        getattr(self.logger, level)(json.dumps(log_data, default=str))

    def debug(self, message: str, **kwargs):
        self.log("debug", message, **kwargs)

    def info(self, message: str, **kwargs):
        self.log("info", message, **kwargs)

    def warning(self, message: str, **kwargs):
        self.log("warning", message, **kwargs)

    def error(self, message: str, exc_info: Optional[str] = None, **kwargs):
        self.log("error", message, exc_info=exc_info, **kwargs)

    def critical(self, message: str, **kwargs):
        self.log("critical", message, **kwargs)

    def log_request(self, method: str, endpoint: str, user_id: Optional[str] = None) -> str:
        """Log incoming request."""
        request_id = str(uuid.uuid4())
        self.set_request_context(request_id, user_id, endpoint, method)
        self.info(f"{method} {endpoint} received")
        return request_id

    def log_response(self, status_code: int, response_time_ms: float, error: Optional[str] = None):
        """Log outgoing response."""
        log_data = {
            "status_code": status_code,
            "response_time_ms": round(response_time_ms, 2),
        }

        if error:
            log_data["error"] = error
            self.error(f"Request failed with status {status_code}", **log_data)
        else:
            self.info(f"Request completed with status {status_code}", **log_data)

    def log_rate_limit_exceeded(self, endpoint: str, user_id: Optional[str] = None):
        """Log rate limit exceeded event."""
        self.warning(
            f"Rate limit exceeded on {endpoint}",
            endpoint=endpoint,
            limited_user=user_id,
        )

    def log_shortcut(self, kind: str, intent: str):
        """Log a templated answer that skipped the completion service."""
        self.info(f"Shortcut response: {kind}", shortcut=kind, intent=intent)

    def log_completion(self, model: str, temperature: float, latency_ms: float,
                       error: Optional[str] = None):
        """Log a completion service round-trip."""
        log_data = {
            "model": model,
            "temperature": temperature,
            "latency_ms": round(latency_ms, 2),
        }
        if error:
            self.error("Completion call failed", error=error, **log_data)
        else:
            self.debug("Completion call succeeded", **log_data)

    def log_memory_write(self, user_id: str, success: bool, error: Optional[str] = None):
        """Log the outcome of a detached memory write."""
        if success:
            self.debug("Memory updated", memory_user=user_id)
        else:
            self.warning("Memory update failed", memory_user=user_id, error=error)


def setup_json_logging(log_file: Optional[str] = None, level: int = logging.INFO):
    """Setup JSON logging to file and console.

    Args:
        log_file: Optional file path for JSON logs
        level: Root log level
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    json_formatter = jsonlogger.JsonFormatter()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(json_formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(json_formatter)
        root_logger.addHandler(file_handler)

        root_logger.info(f"JSON logging initialized to {log_file}")


# Global structured logger instance
logger = StructuredLogger("clearlens")
