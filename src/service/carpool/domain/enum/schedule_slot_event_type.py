"""
Schedule Slot Event Type Enum - pushed to group subscribers over SSE
"""

from enum import StrEnum


class ScheduleSlotEventType(StrEnum):
    SCHEDULE_SLOT_CREATED = 'schedule_slot_created'
    SCHEDULE_SLOT_UPDATED = 'schedule_slot_updated'
    SCHEDULE_SLOT_DELETED = 'schedule_slot_deleted'
    SCHEDULE_UPDATED = 'schedule_updated'
