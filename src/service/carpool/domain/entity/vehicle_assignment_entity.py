from typing import TYPE_CHECKING, List, Optional

import attrs

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import CapacityExceededError, DomainError
from src.service.carpool.domain.entity.user_entity import User
from src.service.carpool.domain.entity.vehicle_entity import Vehicle


if TYPE_CHECKING:
    from src.service.carpool.domain.entity.child_assignment_entity import ChildAssignment


def validate_seat_override(seat_override: Optional[int]) -> Optional[int]:
    if seat_override is None:
        return None
    if seat_override < 0:
        raise DomainError('Seat override cannot be negative')
    if seat_override > settings.VEHICLE_MAX_CAPACITY:
        raise DomainError(f'Seat override cannot exceed {settings.VEHICLE_MAX_CAPACITY}')
    return seat_override


@attrs.define
class VehicleAssignment:
    """A vehicle (and optional driver) attached to one schedule slot."""

    id: str
    schedule_slot_id: str
    vehicle: Vehicle
    driver: Optional[User] = None
    seat_override: Optional[int] = None
    child_assignments: List['ChildAssignment'] = attrs.field(factory=list)

    @property
    def effective_capacity(self) -> int:
        # An override of 0 is a real override
        return self.seat_override if self.seat_override is not None else self.vehicle.capacity

    @property
    def occupied_seats(self) -> int:
        return len(self.child_assignments)

    @property
    def available_seats(self) -> int:
        return max(self.effective_capacity - self.occupied_seats, 0)

    def ensure_seat_available(self, *, current_count: int) -> None:
        """`current_count` must be read while the assignment row is locked."""
        if current_count >= self.effective_capacity:
            raise CapacityExceededError(
                vehicle_name=self.vehicle.name,
                current=current_count,
                effective=self.effective_capacity,
            )

    def ensure_override_fits(self, *, seat_override: Optional[int], current_count: int) -> None:
        new_capacity = seat_override if seat_override is not None else self.vehicle.capacity
        if current_count > new_capacity:
            raise CapacityExceededError(
                vehicle_name=self.vehicle.name,
                current=current_count,
                effective=new_capacity,
            )
