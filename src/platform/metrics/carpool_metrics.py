from prometheus_client import Counter, Histogram

from src.platform.exception.exceptions import (
    AlreadyAssignedError,
    CapacityExceededError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    PastScheduleSlotError,
)


class AssignmentResult:
    SUCCESS = 'success'
    CAPACITY_EXCEEDED = 'capacity_exceeded'
    ALREADY_ASSIGNED = 'already_assigned'
    PAST_SLOT = 'past_slot'
    FORBIDDEN = 'forbidden'
    NOT_FOUND = 'not_found'
    CONFLICT = 'conflict'
    ERROR = 'error'


def classify_assignment_error(exc: BaseException) -> str:
    # Subclasses of ConflictError first
    if isinstance(exc, CapacityExceededError):
        return AssignmentResult.CAPACITY_EXCEEDED
    if isinstance(exc, AlreadyAssignedError):
        return AssignmentResult.ALREADY_ASSIGNED
    if isinstance(exc, ConflictError):
        return AssignmentResult.CONFLICT
    if isinstance(exc, PastScheduleSlotError):
        return AssignmentResult.PAST_SLOT
    if isinstance(exc, ForbiddenError):
        return AssignmentResult.FORBIDDEN
    if isinstance(exc, NotFoundError):
        return AssignmentResult.NOT_FOUND
    return AssignmentResult.ERROR


class CarpoolMetrics:
    """Seat assignment and schedule change metrics, exposed on /metrics."""

    def __init__(self) -> None:
        self.child_assignment_attempts = Counter(
            'carpool_child_assignment_attempts_total',
            'Child-to-vehicle assignment attempts',
            ['result'],
        )

        self.child_assignment_duration = Histogram(
            'carpool_child_assignment_duration_seconds',
            'Time spent inside the assignment transaction',
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
        )

        self.schedule_slot_changes = Counter(
            'carpool_schedule_slot_changes_total',
            'Schedule slot changes broadcast to subscribers',
            ['event_type'],
        )

        self.broadcast_failures = Counter(
            'carpool_broadcast_failures_total',
            'Notifications that could not be delivered to subscribers',
            ['event_type'],
        )

    def record_assignment(self, *, result: str, duration: float | None = None) -> None:
        self.child_assignment_attempts.labels(result=result).inc()
        if duration is not None:
            self.child_assignment_duration.observe(duration)

    def record_schedule_slot_change(self, *, event_type: str) -> None:
        self.schedule_slot_changes.labels(event_type=event_type).inc()

    def record_broadcast_failure(self, *, event_type: str) -> None:
        self.broadcast_failures.labels(event_type=event_type).inc()


metrics = CarpoolMetrics()
