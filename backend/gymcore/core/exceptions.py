"""
Custom exceptions for the application.
Following SOLID principles - centralized error handling.

Every error raised by the scheduling and contract lifecycle services is a
``GymCoreError`` carrying a stable ``kind``, a human-readable message and a
``context`` dict, so callers can always build an actionable response.
"""

from typing import Any, Dict, List, Optional


class GymCoreError(Exception):
    """Base class for all structured core errors."""

    kind = "error"
    retryable = False

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "retryable": self.retryable,
            "context": self.context,
        }


class ValidationError(GymCoreError, ValueError):
    """Malformed input: bad interval, missing field, inactive resource."""

    kind = "validation_error"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        if field:
            ctx.setdefault("field", field)
        super().__init__(message, ctx)
        self.field = field


class NotFoundError(GymCoreError, LookupError):
    """Referenced booking, contract, trainer, client or membership is missing."""

    kind = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            f"{entity} {entity_id} not found",
            {"entity": entity, "entity_id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class SchedulingConflict(GymCoreError):
    """Proposed booking overlaps existing non-cancelled bookings.

    Carries the full conflict set, never just the first offender.
    """

    kind = "scheduling_conflict"

    def __init__(self, conflicts: List[Any]):
        self.conflicts = list(conflicts)
        super().__init__(
            f"Time slot conflicts with {len(self.conflicts)} existing booking(s)",
            {"conflicts": [_describe_booking(b) for b in self.conflicts]},
        )


class LifecycleError(GymCoreError):
    """Base class for rejected contract lifecycle transitions."""

    kind = "lifecycle_error"

    def __init__(self, message: str, from_state: Any, event: Any, **extra: Any):
        context = {"from_state": _label(from_state), "event": _label(event)}
        context.update(extra)
        super().__init__(message, context)
        self.from_state = from_state
        self.event = event


class InvalidTransition(LifecycleError):
    """The requested event is not a legal edge from the current state."""

    kind = "invalid_transition"

    def __init__(self, from_state: Any, event: Any):
        super().__init__(
            f"Cannot {_label(event)} a contract in state {_label(from_state)}",
            from_state,
            event,
        )


class GuardFailed(LifecycleError):
    """The edge exists but its guard data is missing or unsatisfied."""

    kind = "guard_failed"

    def __init__(self, from_state: Any, event: Any, guard: str, message: str):
        super().__init__(message, from_state, event, guard=guard)
        self.guard = guard


class PersistenceError(GymCoreError):
    """Transient storage failure; the whole operation may be retried unchanged."""

    kind = "persistence_error"
    retryable = True


def _label(value: Any) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, "value", str(value))


def _describe_booking(booking: Any) -> Dict[str, Any]:
    interval = getattr(booking, "interval", None)
    return {
        "id": getattr(booking, "id", None),
        "trainer_id": getattr(booking, "trainer_id", None),
        "client_id": getattr(booking, "client_id", None),
        "start": interval.start.isoformat() if interval else None,
        "end": interval.end.isoformat() if interval else None,
    }
