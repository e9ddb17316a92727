from typing import Protocol

from src.service.carpool.domain.entity.child_assignment_entity import ChildAssignment


class IScheduleSlotNotifier(Protocol):
    """
    Post-commit notifications. Implementations must never raise: a failed
    notification cannot undo a committed assignment.
    """

    async def on_child_assigned(self, *, assignment: ChildAssignment) -> None: ...

    async def on_child_removed(
        self, *, group_id: str, schedule_slot_id: str, child_id: str
    ) -> None: ...

    async def on_schedule_slot_created(self, *, group_id: str, schedule_slot_id: str) -> None: ...

    async def on_schedule_slot_updated(self, *, group_id: str, schedule_slot_id: str) -> None: ...

    async def on_schedule_slot_deleted(self, *, group_id: str, schedule_slot_id: str) -> None: ...
