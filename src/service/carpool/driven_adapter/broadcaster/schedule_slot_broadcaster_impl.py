"""Schedule Slot Broadcaster Implementation via the in-process event broadcaster"""

from datetime import datetime, timezone
from typing import Any

from anyio.streams.memory import MemoryObjectReceiveStream

from src.platform.event.i_in_memory_broadcaster import IInMemoryEventBroadcaster
from src.service.carpool.app.interface.i_schedule_slot_broadcaster import IScheduleSlotBroadcaster
from src.service.carpool.domain.enum.schedule_slot_event_type import ScheduleSlotEventType


def group_channel(group_id: str) -> str:
    return f'schedule_slots:{group_id}'


class ScheduleSlotBroadcasterImpl(IScheduleSlotBroadcaster):
    """
    Message format:
        {'event_type': 'schedule_slot_updated', 'group_id': str, 'data': dict, 'timestamp': str}
    """

    def __init__(self, *, event_broadcaster: IInMemoryEventBroadcaster) -> None:
        self._event_broadcaster = event_broadcaster

    async def broadcast(
        self, *, group_id: str, event_type: ScheduleSlotEventType, payload: dict[str, Any]
    ) -> None:
        await self._event_broadcaster.broadcast(
            channel=group_channel(group_id),
            event_data={
                'event_type': event_type.value,
                'group_id': group_id,
                'data': payload,
                'timestamp': datetime.now(timezone.utc).isoformat(),
            },
        )

    async def subscribe(self, *, group_id: str) -> MemoryObjectReceiveStream[dict[str, Any]]:
        return await self._event_broadcaster.subscribe(channel=group_channel(group_id))

    async def unsubscribe(
        self, *, group_id: str, stream: MemoryObjectReceiveStream[dict[str, Any]]
    ) -> None:
        await self._event_broadcaster.unsubscribe(channel=group_channel(group_id), stream=stream)
