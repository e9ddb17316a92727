"""Carpool Domain Enums"""

from src.service.carpool.domain.enum.schedule_slot_event_type import ScheduleSlotEventType

__all__ = ['ScheduleSlotEventType']
