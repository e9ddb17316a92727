"""Application layer interfaces (Ports)"""

from src.service.carpool.app.interface.i_authorization_query_repo import IAuthorizationQueryRepo
from src.service.carpool.app.interface.i_schedule_slot_broadcaster import IScheduleSlotBroadcaster
from src.service.carpool.app.interface.i_schedule_slot_command_repo import (
    IScheduleSlotCommandRepo,
)
from src.service.carpool.app.interface.i_schedule_slot_notifier import IScheduleSlotNotifier
from src.service.carpool.app.interface.i_schedule_slot_query_repo import IScheduleSlotQueryRepo

__all__ = [
    'IAuthorizationQueryRepo',
    'IScheduleSlotBroadcaster',
    'IScheduleSlotCommandRepo',
    'IScheduleSlotNotifier',
    'IScheduleSlotQueryRepo',
]
