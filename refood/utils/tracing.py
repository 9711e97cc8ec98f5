"""Operation tracing for the reservation lifecycle."""

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generator
from uuid import UUID, uuid4

from refood.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class TraceEvent:
    """Individual trace event in a lifecycle operation."""

    timestamp: datetime
    event_type: str
    component: str
    operation_id: UUID
    duration_ms: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class OperationTracer:
    """Traces the steps of one public operation (create, transition...)."""

    def __init__(self, operation: str, operation_id: UUID | None = None):
        self.operation = operation
        self.operation_id = operation_id or uuid4()
        self.events: list[TraceEvent] = []
        self.start_time = time.time()

    def add_event(
        self,
        event_type: str,
        component: str,
        duration_ms: float | None = None,
        **metadata: Any,
    ) -> None:
        """Add a trace event."""
        event = TraceEvent(
            timestamp=datetime.now(timezone.utc),
            event_type=event_type,
            component=component,
            operation_id=self.operation_id,
            duration_ms=duration_ms,
            metadata=metadata,
        )
        self.events.append(event)

        logger.debug(
            "trace_event",
            operation=self.operation,
            operation_id=str(self.operation_id),
            event_type=event_type,
            component=component,
            duration_ms=duration_ms,
            **metadata,
        )

    @contextmanager
    def trace_step(
        self, step: str, component: str, **metadata: Any
    ) -> Generator[None, None, None]:
        """Context manager to trace a step with timing."""
        start = time.time()
        try:
            yield
        finally:
            duration_ms = (time.time() - start) * 1000
            self.add_event(step, component, duration_ms=duration_ms, **metadata)

    def event_types(self) -> list[str]:
        """Event types in the order they were recorded."""
        return [event.event_type for event in self.events]

    def summary(self) -> dict[str, Any]:
        """Steps in order and time spent per component, for one log line."""
        component_ms: dict[str, float] = {}
        for event in self.events:
            spent = component_ms.get(event.component, 0.0)
            component_ms[event.component] = spent + (event.duration_ms or 0.0)

        return {
            "operation": self.operation,
            "operation_id": str(self.operation_id),
            "total_duration_ms": round((time.time() - self.start_time) * 1000, 2),
            "steps": self.event_types(),
            "component_ms": {name: round(ms, 2) for name, ms in component_ms.items()},
        }
