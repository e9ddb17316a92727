"""Results of schedule slot commands and queries, carrying what callers need for notifications."""

from datetime import datetime
from typing import List

import attrs

from src.service.carpool.domain.entity.schedule_slot_entity import ScheduleSlot
from src.service.carpool.domain.entity.vehicle_assignment_entity import VehicleAssignment


@attrs.define(frozen=True)
class CreateScheduleSlotResult:
    schedule_slot: ScheduleSlot
    vehicle_assignment: VehicleAssignment
    slot_created: bool


@attrs.define(frozen=True)
class RemoveVehicleResult:
    schedule_slot_id: str
    group_id: str
    slot_deleted: bool


@attrs.define(frozen=True)
class VehicleAssignmentUpdateResult:
    """Seat override or driver change of one vehicle assignment."""

    vehicle_assignment: VehicleAssignment
    group_id: str


@attrs.define(frozen=True)
class GroupSchedule:
    group_id: str
    start: datetime
    end: datetime
    schedule_slots: List[ScheduleSlot]
