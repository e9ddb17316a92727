from datetime import datetime, timedelta, timezone
from typing import Optional
from unittest.mock import AsyncMock, Mock

import anyio

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import AlreadyAssignedError
from src.service.carpool.domain.entity.child_assignment_entity import ChildAssignment
from src.service.carpool.domain.entity.child_entity import Child
from src.service.carpool.domain.entity.schedule_slot_entity import ScheduleSlot
from src.service.carpool.domain.entity.user_entity import User
from src.service.carpool.domain.entity.vehicle_assignment_entity import VehicleAssignment
from src.service.carpool.domain.entity.vehicle_entity import Vehicle


NOW = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)
FAMILY_ID = 'family-1'
GROUP_ID = 'group-1'
SLOT_ID = 'slot-1'
USER_ID = 'user-1'
VA_ID = 'va-1'


def fixed_now() -> datetime:
    return NOW


def make_vehicle(*, capacity: int = 4, name: str = 'Family Van', vehicle_id: str = 'vehicle-1'):
    return Vehicle(id=vehicle_id, name=name, capacity=capacity, family_id=FAMILY_ID)


def make_vehicle_assignment(
    *,
    capacity: int = 4,
    seat_override: Optional[int] = None,
    va_id: str = VA_ID,
    slot_id: str = SLOT_ID,
    name: str = 'Family Van',
) -> VehicleAssignment:
    return VehicleAssignment(
        id=va_id,
        schedule_slot_id=slot_id,
        vehicle=make_vehicle(capacity=capacity, name=name, vehicle_id=f'vehicle-{va_id}'),
        driver=User(id=USER_ID, email='parent@carpool.test', name='Alex'),
        seat_override=seat_override,
    )


def make_slot(
    *,
    slot_id: str = SLOT_ID,
    when: Optional[datetime] = None,
    group_timezone: Optional[str] = 'UTC',
) -> ScheduleSlot:
    return ScheduleSlot(
        id=slot_id,
        group_id=GROUP_ID,
        datetime=when or NOW + timedelta(days=1),
        group_timezone=group_timezone,
    )


def make_child(child_id: str = 'child-1', name: str = 'Emma') -> Child:
    return Child(id=child_id, name=name, family_id=FAMILY_ID, age=8)


class RepositoryMocks:
    def __init__(
        self,
        *,
        slot: Optional[ScheduleSlot] = None,
        vehicle_assignment: Optional[VehicleAssignment] = None,
        child: Optional[Child] = None,
        current_count: int = 0,
        existing_assignment: Optional[ChildAssignment] = None,
        user_timezone: Optional[str] = None,
        can_access_child: bool = True,
        can_access_group: bool = True,
    ) -> None:
        """
        Initialize mock repositories with test data

        Args:
            slot: Slot returned by get_slot
            vehicle_assignment: Assignment returned by the lock methods
            child: Child returned by get_child
            current_count: Seated children reported for the vehicle assignment
            existing_assignment: Assignment of the child already in the slot
        """
        # Schedule slot command repo
        self.schedule_slot_command_repo: Mock = AsyncMock()
        self.schedule_slot_command_repo.get_slot = AsyncMock(return_value=slot)
        self.schedule_slot_command_repo.get_child = AsyncMock(return_value=child)
        self.schedule_slot_command_repo.lock_vehicle_assignment = AsyncMock(
            return_value=vehicle_assignment
        )
        self.schedule_slot_command_repo.lock_vehicle_assignment_by_vehicle = AsyncMock(
            return_value=vehicle_assignment
        )
        self.schedule_slot_command_repo.count_child_assignments = AsyncMock(
            return_value=current_count
        )
        self.schedule_slot_command_repo.find_child_assignment = AsyncMock(
            return_value=existing_assignment
        )
        self.schedule_slot_command_repo.create_child_assignment = AsyncMock(
            side_effect=self._create_child_assignment
        )
        self.schedule_slot_command_repo.delete_child_assignment = AsyncMock(return_value=True)
        self.schedule_slot_command_repo.driver_has_other_vehicle_in_slot = AsyncMock(
            return_value=False
        )

        # Authorization query repo
        self.authorization_query_repo: Mock = AsyncMock()
        self.authorization_query_repo.get_user_timezone = AsyncMock(return_value=user_timezone)
        self.authorization_query_repo.get_user_family_id = AsyncMock(return_value=FAMILY_ID)
        self.authorization_query_repo.get_group_timezone = AsyncMock(return_value='UTC')
        self.authorization_query_repo.user_family_can_access_child = AsyncMock(
            return_value=can_access_child
        )
        self.authorization_query_repo.user_family_can_access_group = AsyncMock(
            return_value=can_access_group
        )

        self.uow = FakeUnitOfWork(self)

    def uow_factory(self) -> 'FakeUnitOfWork':
        return self.uow

    async def _create_child_assignment(self, *, assignment: ChildAssignment) -> ChildAssignment:
        """Mock: Return assignment with the group attached (simulates the reload)"""
        assignment.group_id = GROUP_ID
        return assignment


class FakeUnitOfWork(AbstractUnitOfWork):
    def __init__(self, mocks: RepositoryMocks) -> None:
        self.schedule_slot_command_repo = mocks.schedule_slot_command_repo
        self.authorization_query_repo = mocks.authorization_query_repo
        self.committed = False
        self.rolled_back = False

    async def _commit(self) -> None:
        self.committed = True

    async def rollback(self) -> None:
        if not self.committed:
            self.rolled_back = True


# =============================================================================
# In-memory store emulating the vehicle assignment row lock
# =============================================================================
class InMemorySeatStore:
    """
    Shared state for concurrent unit-of-work instances.

    `lock_vehicle_assignment` takes a per-assignment anyio.Lock that is held until
    the owning unit of work commits or rolls back, like SELECT ... FOR UPDATE.
    Counts read committed rows plus the caller's own pending rows.
    """

    def __init__(self, *, slot: ScheduleSlot, vehicle_assignments: list[VehicleAssignment]):
        self.slot = slot
        self.vehicle_assignments = {va.id: va for va in vehicle_assignments}
        self.locks = {va.id: anyio.Lock() for va in vehicle_assignments}
        self.children: dict[str, Child] = {}
        self.committed: list[ChildAssignment] = []

    def add_child(self, child: Child) -> None:
        self.children[child.id] = child

    def seat_existing(self, *, vehicle_assignment_id: str, count: int) -> None:
        for i in range(count):
            child = make_child(f'seated-{vehicle_assignment_id}-{i}', f'Seated {i}')
            self.add_child(child)
            self.committed.append(
                ChildAssignment(
                    schedule_slot_id=self.slot.id,
                    child_id=child.id,
                    vehicle_assignment_id=vehicle_assignment_id,
                )
            )

    def count(self, vehicle_assignment_id: str) -> int:
        return sum(1 for a in self.committed if a.vehicle_assignment_id == vehicle_assignment_id)

    def uow_factory(self) -> 'InMemoryUnitOfWork':
        return InMemoryUnitOfWork(self)


class _InMemoryCommandRepo:
    def __init__(self, uow: 'InMemoryUnitOfWork') -> None:
        self._uow = uow
        self._store = uow.store

    async def get_slot(self, *, schedule_slot_id: str, for_update: bool = False):
        return self._store.slot if schedule_slot_id == self._store.slot.id else None

    async def get_child(self, *, child_id: str):
        return self._store.children.get(child_id)

    async def lock_vehicle_assignment(self, *, vehicle_assignment_id: str):
        lock = self._store.locks.get(vehicle_assignment_id)
        if lock is None:
            return None
        await lock.acquire()
        self._uow.held_locks.append(lock)
        # Yield so a competing transaction can reach the lock while it is held
        await anyio.sleep(0.01)
        return self._store.vehicle_assignments[vehicle_assignment_id]

    async def count_child_assignments(self, *, vehicle_assignment_id: str) -> int:
        pending = sum(
            1 for a in self._uow.pending if a.vehicle_assignment_id == vehicle_assignment_id
        )
        return self._store.count(vehicle_assignment_id) + pending

    async def find_child_assignment(self, *, schedule_slot_id: str, child_id: str):
        for a in self._store.committed + self._uow.pending:
            if a.schedule_slot_id == schedule_slot_id and a.child_id == child_id:
                return a
        return None

    async def create_child_assignment(self, *, assignment: ChildAssignment) -> ChildAssignment:
        # Unique (slot, child) backstop
        if await self.find_child_assignment(
            schedule_slot_id=assignment.schedule_slot_id, child_id=assignment.child_id
        ):
            raise AlreadyAssignedError('Child already assigned to this slot')
        assignment.group_id = self._store.slot.group_id
        self._uow.pending.append(assignment)
        return assignment


class _AllowAllAuthorizationRepo:
    async def get_user_timezone(self, *, user_id: str) -> Optional[str]:
        return None

    async def user_family_can_access_child(self, *, user_id: str, child_id: str) -> bool:
        return True

    async def user_family_can_access_group(self, *, user_id: str, group_id: str) -> bool:
        return True


class InMemoryUnitOfWork(AbstractUnitOfWork):
    def __init__(self, store: InMemorySeatStore) -> None:
        self.store = store
        self.pending: list[ChildAssignment] = []
        self.held_locks: list[anyio.Lock] = []
        self.schedule_slot_command_repo = _InMemoryCommandRepo(self)  # type: ignore[assignment]
        self.authorization_query_repo = _AllowAllAuthorizationRepo()  # type: ignore[assignment]

    async def _commit(self) -> None:
        self.store.committed.extend(self.pending)
        self.pending = []
        self._release()

    async def rollback(self) -> None:
        self.pending = []
        self._release()

    def _release(self) -> None:
        while self.held_locks:
            self.held_locks.pop().release()
