"""Step timing for multi-step operations such as checkout."""

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generator

from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class TraceEvent:
    """One timed step of a traced operation."""

    timestamp: datetime
    step: str
    duration_ms: float | None = None
    failed: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)


class OperationTracer:
    """Collects timed steps of one operation, identified by ``operation_id``."""

    def __init__(self, operation: str, operation_id: str):
        self.operation = operation
        self.operation_id = operation_id
        self.events: list[TraceEvent] = []
        self.start_time = time.perf_counter()

    def add_event(
        self,
        step: str,
        duration_ms: float | None = None,
        failed: bool = False,
        **metadata: Any,
    ) -> None:
        event = TraceEvent(
            timestamp=datetime.now(timezone.utc),
            step=step,
            duration_ms=duration_ms,
            failed=failed,
            metadata=metadata,
        )
        self.events.append(event)

        logger.debug(
            "trace_event",
            operation=self.operation,
            operation_id=self.operation_id,
            step=step,
            duration_ms=duration_ms,
            failed=failed,
            **metadata,
        )

    @contextmanager
    def trace_operation(self, step: str, **metadata: Any) -> Generator[None, None, None]:
        """Time the wrapped block; a raised exception is recorded and re-raised."""
        start = time.perf_counter()
        failed = False
        try:
            yield
        except BaseException:
            failed = True
            raise
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            self.add_event(step, duration_ms=duration_ms, failed=failed, **metadata)

    def get_trace_summary(self) -> dict[str, Any]:
        total_duration = (time.perf_counter() - self.start_time) * 1000
        return {
            "operation": self.operation,
            "operation_id": self.operation_id,
            "total_duration_ms": round(total_duration, 3),
            "total_steps": len(self.events),
            "failed_steps": [event.step for event in self.events if event.failed],
            "steps": {
                event.step: round(event.duration_ms or 0.0, 3) for event in self.events
            },
        }
