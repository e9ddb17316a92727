from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from src.service.carpool.domain.entity.child_assignment_entity import ChildAssignment
from src.service.carpool.domain.entity.child_entity import Child
from src.service.carpool.domain.entity.schedule_slot_entity import ScheduleSlot
from src.service.carpool.domain.entity.user_entity import User
from src.service.carpool.domain.entity.vehicle_assignment_entity import VehicleAssignment
from src.service.carpool.domain.entity.vehicle_entity import Vehicle


class IScheduleSlotCommandRepo(ABC):
    """
    Write side of schedule slots. Always bound to the session of a unit of work,
    so every read here sees the same transaction as the writes that follow it.
    """

    # Schedule slot
    @abstractmethod
    async def get_slot(
        self, *, schedule_slot_id: str, for_update: bool = False
    ) -> Optional[ScheduleSlot]:
        """Slot with its group timezone, without vehicle assignments.

        `for_update` takes FOR NO KEY UPDATE on the slot row: concurrent structural
        changes of the slot queue up, while child inserts (FK KEY SHARE) still pass.
        """
        pass

    @abstractmethod
    async def get_slot_by_group_and_datetime(
        self, *, group_id: str, slot_datetime: datetime, for_update: bool = False
    ) -> Optional[ScheduleSlot]:
        """Same locking as `get_slot`. A slot deleted while waiting for the lock reads as None."""
        pass

    @abstractmethod
    async def create_slot(self, *, slot: ScheduleSlot) -> ScheduleSlot:
        pass

    @abstractmethod
    async def delete_slot(self, *, schedule_slot_id: str) -> None:
        pass

    # Vehicle assignment
    @abstractmethod
    async def lock_vehicle_assignment(
        self, *, vehicle_assignment_id: str
    ) -> Optional[VehicleAssignment]:
        """SELECT ... FOR UPDATE on the assignment row, vehicle and driver loaded."""
        pass

    @abstractmethod
    async def lock_vehicle_assignment_by_vehicle(
        self, *, schedule_slot_id: str, vehicle_id: str
    ) -> Optional[VehicleAssignment]:
        pass

    @abstractmethod
    async def create_vehicle_assignment(
        self,
        *,
        schedule_slot_id: str,
        vehicle_id: str,
        driver_id: Optional[str],
        seat_override: Optional[int],
    ) -> VehicleAssignment:
        pass

    @abstractmethod
    async def delete_vehicle_assignment(self, *, vehicle_assignment_id: str) -> None:
        """Child assignments of the vehicle are deleted with it."""
        pass

    @abstractmethod
    async def count_vehicle_assignments(self, *, schedule_slot_id: str) -> int:
        pass

    @abstractmethod
    async def update_seat_override(
        self, *, vehicle_assignment_id: str, seat_override: Optional[int]
    ) -> None:
        pass

    @abstractmethod
    async def update_vehicle_driver(
        self, *, vehicle_assignment_id: str, driver_id: Optional[str]
    ) -> None:
        pass

    @abstractmethod
    async def driver_has_other_vehicle_in_slot(
        self,
        *,
        schedule_slot_id: str,
        driver_id: str,
        exclude_vehicle_assignment_id: Optional[str] = None,
    ) -> bool:
        """True when the driver already drives another vehicle of the slot.

        Slots are unique per group datetime, so this is the double-booking check
        for the driver within the group.
        """
        pass

    # Child assignment
    @abstractmethod
    async def count_child_assignments(self, *, vehicle_assignment_id: str) -> int:
        pass

    @abstractmethod
    async def find_child_assignment(
        self, *, schedule_slot_id: str, child_id: str
    ) -> Optional[ChildAssignment]:
        pass

    @abstractmethod
    async def create_child_assignment(self, *, assignment: ChildAssignment) -> ChildAssignment:
        """Insert and return the row with child, vehicle and driver details.

        Raises AlreadyAssignedError when a unique constraint rejects the row and
        NotFoundError when a referenced row is gone.
        """
        pass

    @abstractmethod
    async def delete_child_assignment(self, *, schedule_slot_id: str, child_id: str) -> bool:
        pass

    # Lookups
    @abstractmethod
    async def get_child(self, *, child_id: str) -> Optional[Child]:
        pass

    @abstractmethod
    async def get_vehicle(self, *, vehicle_id: str) -> Optional[Vehicle]:
        pass

    @abstractmethod
    async def get_user(self, *, user_id: str) -> Optional[User]:
        pass
