"""Validation metrics.

Every validation call is recorded as a ValidationEvent. Counters are
append-only and guarded by a lock; listeners (telemetry exporters,
dashboards) are notified outside the lock. A failing listener is logged
and skipped, it never fails the validation pass.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from threading import RLock
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class Outcome(Enum):
    """How a validation call ended."""

    VALID = "valid"
    INVALID = "invalid"
    UNREGISTERED = "unregistered"
    CANCELLED = "cancelled"
    FAULTED = "faulted"


@dataclass(frozen=True)
class ValidationEvent:
    """One recorded validation call.

    Attributes:
        type_name: Name of the validated type
        outcome: How the call ended
        duration_ms: Wall-clock duration of the call
        errors: Number of ERROR entries
        warnings: Number of WARNING entries
        infos: Number of INFO entries
        group: Active group of the call
    """

    type_name: str
    outcome: Outcome
    duration_ms: float
    errors: int = 0
    warnings: int = 0
    infos: int = 0
    group: str | None = None


class ValidationListener(Protocol):
    """Receives every recorded validation event."""

    def on_validation(self, event: ValidationEvent) -> None:
        ...


@dataclass
class ValidationMetrics:
    """Thread-safe validation counters with listener fan-out."""

    _listeners: list[ValidationListener] = field(default_factory=list)
    _lock: RLock = field(default_factory=RLock)
    _outcomes: Counter = field(default_factory=Counter)
    _by_type: Counter = field(default_factory=Counter)
    _total_duration_ms: float = 0.0

    def add_listener(self, listener: ValidationListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: ValidationListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def record(self, event: ValidationEvent) -> None:
        with self._lock:
            self._outcomes[event.outcome] += 1
            self._by_type[event.type_name] += 1
            self._total_duration_ms += event.duration_ms
            listeners = self._listeners.copy()

        for listener in listeners:
            try:
                listener.on_validation(event)
            except Exception:
                logger.warning(
                    "Validation listener %r failed for %s",
                    listener,
                    event.type_name,
                    exc_info=True,
                )

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            total = sum(self._outcomes.values())
            return {
                "total": total,
                "outcomes": {o.value: self._outcomes[o] for o in Outcome},
                "byType": dict(self._by_type),
                "averageDurationMs": self._total_duration_ms / total if total else 0.0,
            }

    def reset(self) -> None:
        with self._lock:
            self._outcomes.clear()
            self._by_type.clear()
            self._total_duration_ms = 0.0
