from datetime import datetime, timezone
from typing import Optional

import attrs

from src.service.carpool.domain.entity.child_entity import Child
from src.service.carpool.domain.entity.vehicle_assignment_entity import VehicleAssignment


@attrs.define
class ChildAssignment:
    """One child occupying one seat of a vehicle assignment. At most one per (slot, child)."""

    schedule_slot_id: str
    child_id: str
    vehicle_assignment_id: str
    assigned_at: datetime = attrs.field(factory=lambda: datetime.now(timezone.utc))
    child: Optional[Child] = None
    vehicle_assignment: Optional[VehicleAssignment] = None
    group_id: Optional[str] = None

    @classmethod
    def create(
        cls, *, schedule_slot_id: str, child_id: str, vehicle_assignment_id: str
    ) -> 'ChildAssignment':
        return cls(
            schedule_slot_id=schedule_slot_id,
            child_id=child_id,
            vehicle_assignment_id=vehicle_assignment_id,
        )
