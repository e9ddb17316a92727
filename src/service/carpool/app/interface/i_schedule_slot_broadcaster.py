from typing import Any, Protocol

from anyio.streams.memory import MemoryObjectReceiveStream

from src.service.carpool.domain.enum.schedule_slot_event_type import ScheduleSlotEventType


class IScheduleSlotBroadcaster(Protocol):
    """Fan-out of schedule changes to the live subscribers of a group."""

    async def broadcast(
        self, *, group_id: str, event_type: ScheduleSlotEventType, payload: dict[str, Any]
    ) -> None: ...

    async def subscribe(self, *, group_id: str) -> MemoryObjectReceiveStream[dict[str, Any]]: ...

    async def unsubscribe(
        self, *, group_id: str, stream: MemoryObjectReceiveStream[dict[str, Any]]
    ) -> None: ...
