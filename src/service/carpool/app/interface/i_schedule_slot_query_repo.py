from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from src.service.carpool.domain.entity.child_entity import Child
from src.service.carpool.domain.entity.schedule_slot_entity import ScheduleSlot


class IScheduleSlotQueryRepo(ABC):
    """Read side of schedule slots (own session, no locks)."""

    @abstractmethod
    async def get_slot_with_details(self, *, schedule_slot_id: str) -> Optional[ScheduleSlot]:
        """Slot with vehicle assignments, vehicles, drivers and seated children."""
        pass

    @abstractmethod
    async def list_group_slots(
        self, *, group_id: str, start: datetime, end: datetime
    ) -> List[ScheduleSlot]:
        """Slots of the group with start <= datetime <= end, detailed as above, oldest first."""
        pass

    @abstractmethod
    async def list_available_children(
        self, *, schedule_slot_id: str, group_id: str, family_id: str
    ) -> List[Child]:
        """Children of the family that belong to the group and are not seated in the slot."""
        pass
