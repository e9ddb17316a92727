"""
Schedule Slot Notifier

Turns committed schedule changes into broadcast events for the group. Every
slot change is followed by a group-wide `schedule_updated` so that clients
showing the weekly schedule refresh as well.
"""

from typing import Any

from src.platform.logging.loguru_io import Logger
from src.platform.metrics.carpool_metrics import metrics
from src.service.carpool.app.interface.i_schedule_slot_broadcaster import IScheduleSlotBroadcaster
from src.service.carpool.app.interface.i_schedule_slot_notifier import IScheduleSlotNotifier
from src.service.carpool.domain.entity.child_assignment_entity import ChildAssignment
from src.service.carpool.domain.enum.schedule_slot_event_type import ScheduleSlotEventType


class ScheduleSlotNotifier(IScheduleSlotNotifier):
    def __init__(self, *, broadcaster: IScheduleSlotBroadcaster) -> None:
        self._broadcaster = broadcaster

    async def _notify(
        self, *, group_id: str, event_type: ScheduleSlotEventType, payload: dict[str, Any]
    ) -> None:
        for current_type in (event_type, ScheduleSlotEventType.SCHEDULE_UPDATED):
            try:
                await self._broadcaster.broadcast(
                    group_id=group_id, event_type=current_type, payload=payload
                )
                metrics.record_schedule_slot_change(event_type=current_type.value)
            except Exception as e:
                # Fire-and-forget: the change is already committed
                metrics.record_broadcast_failure(event_type=current_type.value)
                Logger.base.warning(
                    f'⚠️ [NOTIFIER] Failed to broadcast {current_type.value} '
                    f'for group {group_id}: {e}'
                )

    async def on_child_assigned(self, *, assignment: ChildAssignment) -> None:
        if assignment.group_id is None:
            Logger.base.warning(
                f'⚠️ [NOTIFIER] Assignment for slot {assignment.schedule_slot_id} has no group'
            )
            return
        await self._notify(
            group_id=assignment.group_id,
            event_type=ScheduleSlotEventType.SCHEDULE_SLOT_UPDATED,
            payload={
                'schedule_slot_id': assignment.schedule_slot_id,
                'child_id': assignment.child_id,
                'vehicle_assignment_id': assignment.vehicle_assignment_id,
                'action': 'child_assigned',
            },
        )

    async def on_child_removed(self, *, group_id: str, schedule_slot_id: str, child_id: str) -> None:
        await self._notify(
            group_id=group_id,
            event_type=ScheduleSlotEventType.SCHEDULE_SLOT_UPDATED,
            payload={
                'schedule_slot_id': schedule_slot_id,
                'child_id': child_id,
                'action': 'child_removed',
            },
        )

    async def on_schedule_slot_created(self, *, group_id: str, schedule_slot_id: str) -> None:
        await self._notify(
            group_id=group_id,
            event_type=ScheduleSlotEventType.SCHEDULE_SLOT_CREATED,
            payload={'schedule_slot_id': schedule_slot_id},
        )

    async def on_schedule_slot_updated(self, *, group_id: str, schedule_slot_id: str) -> None:
        await self._notify(
            group_id=group_id,
            event_type=ScheduleSlotEventType.SCHEDULE_SLOT_UPDATED,
            payload={'schedule_slot_id': schedule_slot_id},
        )

    async def on_schedule_slot_deleted(self, *, group_id: str, schedule_slot_id: str) -> None:
        await self._notify(
            group_id=group_id,
            event_type=ScheduleSlotEventType.SCHEDULE_SLOT_DELETED,
            payload={'schedule_slot_id': schedule_slot_id},
        )
