from src.service.carpool.driven_adapter.broadcaster.schedule_slot_broadcaster_impl import (
    ScheduleSlotBroadcasterImpl,
)
from src.service.carpool.driven_adapter.broadcaster.schedule_slot_notifier import (
    ScheduleSlotNotifier,
)

__all__ = ['ScheduleSlotBroadcasterImpl', 'ScheduleSlotNotifier']
