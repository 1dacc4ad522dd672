"""
Observability Layer — Structured resolution events.

Responsibility:
- Log resolution events as JSON lines (phase boundaries, resolved slots, prompts)
- Time each phase of a resolution call
- Carry call-level context (session_id, trace_id, schema) on every entry
"""

import json
import logging
import time
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger("observability")


class Observability:
    """Structured logger for one resolution call."""

    def __init__(self, session_id: str | None = None, schema_name: str | None = None):
        self.session_id = session_id or str(uuid.uuid4())
        self.trace_id = str(uuid.uuid4())
        self.schema_name = schema_name
        self.prompt_count = 0

    def log_event(self, event_type: str, payload: dict[str, Any], level: str = "INFO") -> None:
        """Log a structured event."""
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "session_id": self.session_id,
            "trace_id": self.trace_id,
            "schema": self.schema_name,
            "event": event_type,
            "level": level,
            **payload,
        }
        log_method = getattr(logger, level.lower(), logger.info)
        log_method(json.dumps(entry, default=str))

    def record_prompt(self, slot_name: str, kind: str) -> None:
        """Count a user round-trip; the count is reported with phase2_completed."""
        self.prompt_count += 1
        self.log_event("prompt_sent", {"slot": slot_name, "kind": kind}, level="DEBUG")

    @contextmanager
    def measure(self, operation: str, metadata: dict[str, Any] | None = None):
        """Context manager to measure execution time of an operation."""
        start_time = time.perf_counter()
        meta = metadata or {}
        try:
            yield
            success = True
            error = None
        except Exception as e:
            success = False
            error = str(e)
            raise
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self.log_event(
                "resolution_metric",
                {
                    "operation": operation,
                    "duration_ms": round(duration_ms, 2),
                    "success": success,
                    "error": error,
                    **meta,
                },
                level="DEBUG",
            )
