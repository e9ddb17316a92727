"""Application layer DTOs"""

from src.service.carpool.app.dto.schedule_slot_dto import (
    CreateScheduleSlotResult,
    GroupSchedule,
    RemoveVehicleResult,
    VehicleAssignmentUpdateResult,
)

__all__ = [
    'CreateScheduleSlotResult',
    'GroupSchedule',
    'RemoveVehicleResult',
    'VehicleAssignmentUpdateResult',
]
