"""
Structured logging for the dashboard chat service.
Every store access, tool call, provider round and context fetch goes through here.
"""

import logging
from typing import Any, Dict, List

# Keys whose values may carry whole documents (KB markdown, chat text)
SENSITIVE_FIELDS = ['content', 'data', 'message', 'response', 'updates']


class StructuredLogger:
    """Structured logger for store, tool and conversation operations."""

    def __init__(self, name: str = "pace_dashboard"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def set_debug(self, enabled: bool) -> None:
        """Switch the logger between INFO and DEBUG."""
        self.logger.setLevel(logging.DEBUG if enabled else logging.INFO)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        if status in ("failed", "error"):
            self.logger.warning(message)
        else:
            self.logger.info(message)

    def log_store_operation(self, operation: str, bucket: str, key: str = "", status: str = "success",
                            details: Dict[str, Any] = None):
        """Log a document store operation."""
        log_details = {"bucket": bucket, "key": key}
        if details:
            log_details.update(details)

        self.log_operation(f"store.{operation}", status, log_details)

    def log_tool_call(self, tool_name: str, arguments: Dict[str, Any], status: str = "success",
                      duration_ms: float = 0.0, error: str = None, mutating: bool = False):
        """Log a tool execution with sanitized arguments."""
        log_details = {
            "arguments": sanitize_payload(arguments or {}),
            "duration_ms": duration_ms,
            "mutating": mutating
        }
        if error:
            log_details["error"] = error[:200]

        self.log_operation(f"tool.{tool_name}", status, log_details)

    def log_round(self, round_index: int, stop_reason: str, tool_calls: List[str] = None):
        """Log one provider round of the conversation loop."""
        log_details = {
            "round": round_index,
            "stop_reason": stop_reason,
            "tool_calls": tool_calls or []
        }
        self.log_operation("chat.round", "completed", log_details)

    def log_context_source(self, source: str, status: str = "success", error: str = None):
        """Log a context fetch used to assemble the system prompt."""
        log_details = {"source": source}
        if error:
            log_details["error"] = error[:200]

        self.log_operation(f"context.{source}", status, log_details)

    def log_chat_request(self, process_id: str, history_length: int, status: str = "received",
                         details: Dict[str, Any] = None):
        """Log a chat request entering or leaving the API."""
        log_details = {"process_id": process_id, "history_length": history_length}
        if details:
            log_details.update(details)

        self.log_operation("chat.request", status, log_details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()


def sanitize_payload(payload: Any, reveal_sensitive: bool = False, sensitive_fields: List[str] = None) -> Any:
    """Sanitize payloads for logging: truncate long strings, elide document bodies."""
    if sensitive_fields is None:
        sensitive_fields = SENSITIVE_FIELDS

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if reveal_sensitive or k not in sensitive_fields:
                sanitized[k] = sanitize_payload(v, reveal_sensitive, sensitive_fields)
            elif isinstance(v, str):
                sanitized[k] = f"[{len(v)} chars]"
            else:
                sanitized[k] = "[REDACTED]"
        return sanitized
    elif isinstance(payload, str):
        # Truncate long strings
        return payload[:100] + "..." if len(payload) > 100 else payload
    elif isinstance(payload, list):
        return [sanitize_payload(item, reveal_sensitive, sensitive_fields) for item in payload]
    else:
        return payload
