from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from src.service.carpool.app.dto.schedule_slot_dto import GroupSchedule
from src.service.carpool.domain.entity.child_assignment_entity import ChildAssignment
from src.service.carpool.domain.entity.child_entity import Child
from src.service.carpool.domain.entity.schedule_slot_entity import ScheduleSlot
from src.service.carpool.domain.entity.user_entity import User
from src.service.carpool.domain.entity.vehicle_assignment_entity import VehicleAssignment


# ============================ Requests ============================


class ScheduleSlotCreateRequest(BaseModel):
    datetime: str = Field(description='ISO-8601 timestamp; naive values are UTC')
    vehicle_id: str
    driver_id: Optional[str] = None
    seat_override: Optional[int] = None

    model_config = {
        'json_schema_extra': {
            'example': {
                'datetime': '2026-11-02T07:30:00Z',
                'vehicle_id': '019a3b2c-7d4e-7f10-8a2b-3c4d5e6f7a8b',
                'driver_id': None,
                'seat_override': None,
            }
        },
    }


class AssignChildRequest(BaseModel):
    child_id: str
    vehicle_assignment_id: str

    model_config = {
        'json_schema_extra': {
            'example': {
                'child_id': '019a3b2c-9a1e-7c22-b0a1-1f2e3d4c5b6a',
                'vehicle_assignment_id': '019a3b2d-0b2f-7d33-81b2-2a3b4c5d6e7f',
            }
        },
    }


class SeatOverrideUpdateRequest(BaseModel):
    # None clears the override
    seat_override: Optional[int] = None


class VehicleDriverUpdateRequest(BaseModel):
    # None clears the driver
    driver_id: Optional[str] = None


# ============================ Responses ============================


class ChildResponse(BaseModel):
    id: str
    name: str
    family_id: str
    age: Optional[int] = None

    @classmethod
    def from_entity(cls, child: Child) -> 'ChildResponse':
        return cls(id=child.id, name=child.name, family_id=child.family_id, age=child.age)


class DriverResponse(BaseModel):
    id: str
    name: str

    @classmethod
    def from_entity(cls, user: User) -> 'DriverResponse':
        return cls(id=user.id, name=user.name)


class VehicleResponse(BaseModel):
    id: str
    name: str
    capacity: int


class ChildAssignmentResponse(BaseModel):
    schedule_slot_id: str
    child_id: str
    vehicle_assignment_id: str
    assigned_at: datetime
    child: Optional[ChildResponse] = None
    vehicle: Optional[VehicleResponse] = None
    driver: Optional[DriverResponse] = None

    @classmethod
    def from_entity(cls, assignment: ChildAssignment) -> 'ChildAssignmentResponse':
        va = assignment.vehicle_assignment
        return cls(
            schedule_slot_id=assignment.schedule_slot_id,
            child_id=assignment.child_id,
            vehicle_assignment_id=assignment.vehicle_assignment_id,
            assigned_at=assignment.assigned_at,
            child=ChildResponse.from_entity(assignment.child) if assignment.child else None,
            vehicle=(
                VehicleResponse(
                    id=va.vehicle.id, name=va.vehicle.name, capacity=va.vehicle.capacity
                )
                if va
                else None
            ),
            driver=DriverResponse.from_entity(va.driver) if va and va.driver else None,
        )


class VehicleAssignmentResponse(BaseModel):
    id: str
    schedule_slot_id: str
    vehicle: VehicleResponse
    driver: Optional[DriverResponse] = None
    seat_override: Optional[int] = None
    effective_capacity: int
    occupied_seats: int
    available_seats: int
    children: List[ChildResponse] = []

    @classmethod
    def from_entity(cls, va: VehicleAssignment) -> 'VehicleAssignmentResponse':
        return cls(
            id=va.id,
            schedule_slot_id=va.schedule_slot_id,
            vehicle=VehicleResponse(
                id=va.vehicle.id, name=va.vehicle.name, capacity=va.vehicle.capacity
            ),
            driver=DriverResponse.from_entity(va.driver) if va.driver else None,
            seat_override=va.seat_override,
            effective_capacity=va.effective_capacity,
            occupied_seats=va.occupied_seats,
            available_seats=va.available_seats,
            children=[
                ChildResponse.from_entity(ca.child) for ca in va.child_assignments if ca.child
            ],
        )


class ScheduleSlotResponse(BaseModel):
    model_config = {
        'json_schema_extra': {
            'example': {
                'id': '019a3b2b-1c2d-7e3f-9a4b-5c6d7e8f9a0b',
                'group_id': '019a3b2a-0a1b-7c2d-8e3f-4a5b6c7d8e9f',
                'datetime': '2026-11-02T07:30:00Z',
                'total_capacity': 7,
                'occupied_seats': 2,
                'available_seats': 5,
                'vehicle_assignments': [],
            }
        },
    }

    id: str
    group_id: str
    datetime: datetime
    total_capacity: int
    occupied_seats: int
    available_seats: int
    vehicle_assignments: List[VehicleAssignmentResponse] = []

    @classmethod
    def from_entity(cls, slot: ScheduleSlot) -> 'ScheduleSlotResponse':
        return cls(
            id=slot.id,
            group_id=slot.group_id,
            datetime=slot.datetime,
            total_capacity=slot.total_capacity,
            occupied_seats=slot.occupied_seats,
            available_seats=slot.available_seats,
            vehicle_assignments=[
                VehicleAssignmentResponse.from_entity(va) for va in slot.vehicle_assignments
            ],
        )


class GroupScheduleResponse(BaseModel):
    group_id: str
    start_date: datetime
    end_date: datetime
    schedule_slots: List[ScheduleSlotResponse] = []

    @classmethod
    def from_entity(cls, schedule: GroupSchedule) -> 'GroupScheduleResponse':
        return cls(
            group_id=schedule.group_id,
            start_date=schedule.start,
            end_date=schedule.end,
            schedule_slots=[ScheduleSlotResponse.from_entity(s) for s in schedule.schedule_slots],
        )


class ScheduleSlotCreateResponse(BaseModel):
    schedule_slot: ScheduleSlotResponse
    vehicle_assignment: VehicleAssignmentResponse
    slot_created: bool


class RemoveVehicleResponse(BaseModel):
    schedule_slot_id: str
    slot_deleted: bool


class MessageResponse(BaseModel):
    message: str
