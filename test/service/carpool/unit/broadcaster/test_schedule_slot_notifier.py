from unittest.mock import AsyncMock

from anyio import fail_after
import pytest

from src.platform.event.in_memory_broadcaster import InMemoryEventBroadcasterImpl
from src.service.carpool.domain.entity.child_assignment_entity import ChildAssignment
from src.service.carpool.domain.enum import ScheduleSlotEventType
from src.service.carpool.driven_adapter.broadcaster.schedule_slot_broadcaster_impl import (
    ScheduleSlotBroadcasterImpl,
    group_channel,
)
from src.service.carpool.driven_adapter.broadcaster.schedule_slot_notifier import (
    ScheduleSlotNotifier,
)


@pytest.fixture
def event_broadcaster() -> InMemoryEventBroadcasterImpl:
    return InMemoryEventBroadcasterImpl()


@pytest.fixture
def broadcaster(event_broadcaster) -> ScheduleSlotBroadcasterImpl:
    return ScheduleSlotBroadcasterImpl(event_broadcaster=event_broadcaster)


@pytest.mark.unit
class TestScheduleSlotNotifier:
    @pytest.mark.asyncio
    async def test_child_assigned_reaches_group_subscribers(self, broadcaster):
        """
        Given: a client subscribed to group-1
        When: a child assignment in group-1 is notified
        Then: it receives schedule_slot_updated followed by schedule_updated
        """
        stream = await broadcaster.subscribe(group_id='group-1')
        notifier = ScheduleSlotNotifier(broadcaster=broadcaster)
        assignment = ChildAssignment(
            schedule_slot_id='slot-1',
            child_id='child-1',
            vehicle_assignment_id='va-1',
            group_id='group-1',
        )

        await notifier.on_child_assigned(assignment=assignment)

        with fail_after(1.0):
            first = await stream.receive()
            second = await stream.receive()
        assert first['event_type'] == ScheduleSlotEventType.SCHEDULE_SLOT_UPDATED.value
        assert first['group_id'] == 'group-1'
        assert first['data'] == {
            'schedule_slot_id': 'slot-1',
            'child_id': 'child-1',
            'vehicle_assignment_id': 'va-1',
            'action': 'child_assigned',
        }
        assert 'timestamp' in first
        assert second['event_type'] == ScheduleSlotEventType.SCHEDULE_UPDATED.value

    @pytest.mark.asyncio
    async def test_slot_deleted_event(self, broadcaster):
        stream = await broadcaster.subscribe(group_id='group-1')
        notifier = ScheduleSlotNotifier(broadcaster=broadcaster)

        await notifier.on_schedule_slot_deleted(group_id='group-1', schedule_slot_id='slot-1')

        with fail_after(1.0):
            event = await stream.receive()
        assert event['event_type'] == 'schedule_slot_deleted'

    @pytest.mark.asyncio
    async def test_broadcast_failure_is_not_raised(self):
        failing = AsyncMock()
        failing.broadcast = AsyncMock(side_effect=RuntimeError('subscriber exploded'))
        notifier = ScheduleSlotNotifier(broadcaster=failing)

        await notifier.on_child_removed(
            group_id='group-1', schedule_slot_id='slot-1', child_id='child-1'
        )

        assert failing.broadcast.await_count == 2

    @pytest.mark.asyncio
    async def test_unsubscribe_releases_group_channel(self, broadcaster, event_broadcaster):
        stream = await broadcaster.subscribe(group_id='group-1')

        await broadcaster.unsubscribe(group_id='group-1', stream=stream)

        assert event_broadcaster.subscriber_count(channel=group_channel('group-1')) == 0
