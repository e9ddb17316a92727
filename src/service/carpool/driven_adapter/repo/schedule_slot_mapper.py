"""ORM model -> domain entity conversion shared by the schedule slot repositories"""

from datetime import timezone
from typing import Optional

from src.service.carpool.domain.entity.child_assignment_entity import ChildAssignment
from src.service.carpool.domain.entity.child_entity import Child
from src.service.carpool.domain.entity.schedule_slot_entity import ScheduleSlot
from src.service.carpool.domain.entity.user_entity import User
from src.service.carpool.domain.entity.vehicle_assignment_entity import VehicleAssignment
from src.service.carpool.domain.entity.vehicle_entity import Vehicle
from src.service.carpool.driven_adapter.model.child_model import ChildModel
from src.service.carpool.driven_adapter.model.schedule_slot_model import (
    ScheduleSlotChildModel,
    ScheduleSlotModel,
    ScheduleSlotVehicleModel,
)
from src.service.carpool.driven_adapter.model.user_model import UserModel
from src.service.carpool.driven_adapter.model.vehicle_model import VehicleModel


def to_user(model: Optional[UserModel]) -> Optional[User]:
    if model is None:
        return None
    return User(id=model.id, email=model.email, name=model.name, timezone=model.timezone)


def to_child(model: ChildModel) -> Child:
    return Child(id=model.id, name=model.name, family_id=model.family_id, age=model.age)


def to_vehicle(model: VehicleModel) -> Vehicle:
    return Vehicle(
        id=model.id, name=model.name, capacity=model.capacity, family_id=model.family_id
    )


def to_vehicle_assignment(
    model: ScheduleSlotVehicleModel, *, with_children: bool = False
) -> VehicleAssignment:
    vehicle_assignment = VehicleAssignment(
        id=model.id,
        schedule_slot_id=model.schedule_slot_id,
        vehicle=to_vehicle(model.vehicle),
        driver=to_user(model.driver),
        seat_override=model.seat_override,
    )
    if with_children:
        vehicle_assignment.child_assignments = [
            to_child_assignment(child_model) for child_model in model.child_assignments
        ]
    return vehicle_assignment


def to_child_assignment(
    model: ScheduleSlotChildModel,
    *,
    vehicle_assignment: Optional[VehicleAssignment] = None,
    group_id: Optional[str] = None,
) -> ChildAssignment:
    return ChildAssignment(
        schedule_slot_id=model.schedule_slot_id,
        child_id=model.child_id,
        vehicle_assignment_id=model.vehicle_assignment_id,
        assigned_at=model.assigned_at,
        child=to_child(model.child),
        vehicle_assignment=vehicle_assignment,
        group_id=group_id,
    )


def to_schedule_slot(
    model: ScheduleSlotModel,
    *,
    group_timezone: Optional[str] = None,
    with_assignments: bool = False,
) -> ScheduleSlot:
    slot_datetime = model.slot_datetime
    if slot_datetime.tzinfo is None:
        slot_datetime = slot_datetime.replace(tzinfo=timezone.utc)

    slot = ScheduleSlot(
        id=model.id,
        group_id=model.group_id,
        datetime=slot_datetime,
        group_timezone=group_timezone,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )
    if with_assignments:
        slot.vehicle_assignments = [
            to_vehicle_assignment(va, with_children=True) for va in model.vehicle_assignments
        ]
    return slot
