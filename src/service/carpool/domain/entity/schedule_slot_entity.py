from datetime import datetime, timezone
from typing import List, Optional

import attrs
import uuid_utils as uuid

from src.service.carpool.domain.entity.vehicle_assignment_entity import VehicleAssignment


@attrs.define
class ScheduleSlot:
    """A dated transport occurrence of a group. `datetime` is always UTC."""

    id: str
    group_id: str
    datetime: datetime
    group_timezone: Optional[str] = None
    vehicle_assignments: List[VehicleAssignment] = attrs.field(factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def create(cls, *, group_id: str, slot_datetime: datetime) -> 'ScheduleSlot':
        now = datetime.now(timezone.utc)
        return cls(
            id=str(uuid.uuid7()),
            group_id=group_id,
            datetime=slot_datetime,
            created_at=now,
            updated_at=now,
        )

    @property
    def total_capacity(self) -> int:
        return sum(va.effective_capacity for va in self.vehicle_assignments)

    @property
    def occupied_seats(self) -> int:
        return sum(va.occupied_seats for va in self.vehicle_assignments)

    @property
    def available_seats(self) -> int:
        return max(self.total_capacity - self.occupied_seats, 0)
