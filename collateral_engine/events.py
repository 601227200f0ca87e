"""Audit trail of state changes and administrative actions."""
from __future__ import annotations

import logging
from typing import Any, Callable

from .models import AuditEvent

logger = logging.getLogger(__name__)


class EventLog:
    """Append-only list of audit events, mirrored to the log."""

    def __init__(self, clock: Callable[[], int]) -> None:
        self._clock = clock
        self._events: list[AuditEvent] = []

    def emit(self, name: str, **fields: Any) -> AuditEvent:
        event = AuditEvent(
            name=name,
            timestamp=int(self._clock()),
            fields=tuple(sorted(fields.items())),
        )
        self._events.append(event)
        logger.info(
            "%s %s",
            name,
            " ".join(f"{k}={v}" for k, v in event.fields),
        )
        return event

    def __iter__(self):
        return iter(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def named(self, name: str) -> list[AuditEvent]:
        return [e for e in self._events if e.name == name]

    @property
    def last(self) -> AuditEvent | None:
        return self._events[-1] if self._events else None
