"""
Unit tests for AssignChildToScheduleSlotUseCase

Covers the seat-capacity guard:
1. Effective capacity (seat override over nominal capacity, both directions)
2. Duplicate assignment rejection without double counting
3. Past slot, authorization and not-found checks in order
4. Concurrent requests for the last seat, with an in-memory row lock
"""

from datetime import timedelta

import anyio
import pytest

from src.platform.exception.exceptions import (
    AlreadyAssignedError,
    CapacityExceededError,
    ForbiddenError,
    NotFoundError,
    PastScheduleSlotError,
)
from src.service.carpool.app.command.assign_child_to_schedule_slot_use_case import (
    AssignChildToScheduleSlotUseCase,
)
from src.service.carpool.domain.entity.child_assignment_entity import ChildAssignment
from test.service.carpool.unit.helpers import (
    GROUP_ID,
    NOW,
    SLOT_ID,
    USER_ID,
    VA_ID,
    InMemorySeatStore,
    RepositoryMocks,
    fixed_now,
    make_child,
    make_slot,
    make_vehicle_assignment,
)


def _use_case(uow_factory) -> AssignChildToScheduleSlotUseCase:
    return AssignChildToScheduleSlotUseCase(uow_factory=uow_factory, now=fixed_now)


async def _assign(use_case: AssignChildToScheduleSlotUseCase, child_id: str = 'child-1'):
    return await use_case.execute(
        schedule_slot_id=SLOT_ID,
        child_id=child_id,
        vehicle_assignment_id=VA_ID,
        requesting_user_id=USER_ID,
    )


@pytest.mark.unit
class TestAssignChildCapacity:
    @pytest.mark.asyncio
    async def test_full_vehicle_without_override_is_rejected(self):
        """
        Given: vehicle capacity 4, no override, 4 children seated
        When: a fifth child is assigned
        Then: CapacityExceeded with 4/4 and nothing is inserted
        """
        mocks = RepositoryMocks(
            slot=make_slot(),
            vehicle_assignment=make_vehicle_assignment(capacity=4),
            child=make_child(),
            current_count=4,
        )

        with pytest.raises(CapacityExceededError) as exc_info:
            await _assign(_use_case(mocks.uow_factory))

        assert exc_info.value.message == 'Vehicle Family Van is at full capacity (4/4)'
        assert exc_info.value.status_code == 409
        mocks.schedule_slot_command_repo.create_child_assignment.assert_not_awaited()
        assert mocks.uow.committed is False
        assert mocks.uow.rolled_back is True

    @pytest.mark.asyncio
    async def test_raised_override_allows_seats_beyond_nominal_capacity(self):
        """
        Given: vehicle capacity 4, seat override 6, 5 children seated
        When: a sixth child is assigned
        Then: the assignment succeeds and is committed
        """
        mocks = RepositoryMocks(
            slot=make_slot(),
            vehicle_assignment=make_vehicle_assignment(capacity=4, seat_override=6),
            child=make_child(),
            current_count=5,
        )

        assignment = await _assign(_use_case(mocks.uow_factory))

        assert isinstance(assignment, ChildAssignment)
        assert assignment.child_id == 'child-1'
        assert assignment.vehicle_assignment_id == VA_ID
        assert assignment.group_id == GROUP_ID
        assert mocks.uow.committed is True

    @pytest.mark.asyncio
    async def test_raised_override_is_still_a_hard_limit(self):
        """
        Given: vehicle capacity 4, seat override 6, 6 children seated
        When: a seventh child is assigned
        Then: CapacityExceeded with 6/6
        """
        mocks = RepositoryMocks(
            slot=make_slot(),
            vehicle_assignment=make_vehicle_assignment(capacity=4, seat_override=6),
            child=make_child(),
            current_count=6,
        )

        with pytest.raises(CapacityExceededError, match=r'\(6/6\)'):
            await _assign(_use_case(mocks.uow_factory))

    @pytest.mark.asyncio
    async def test_lowered_override_rejects_below_nominal_capacity(self):
        """
        Given: vehicle capacity 5, seat override 2, 2 children seated
        When: a third child is assigned
        Then: CapacityExceeded with 2/2 although the vehicle has 5 seats
        """
        mocks = RepositoryMocks(
            slot=make_slot(),
            vehicle_assignment=make_vehicle_assignment(capacity=5, seat_override=2),
            child=make_child(),
            current_count=2,
        )

        with pytest.raises(CapacityExceededError, match=r'\(2/2\)'):
            await _assign(_use_case(mocks.uow_factory))

    @pytest.mark.asyncio
    async def test_zero_override_closes_the_vehicle(self):
        mocks = RepositoryMocks(
            slot=make_slot(),
            vehicle_assignment=make_vehicle_assignment(capacity=4, seat_override=0),
            child=make_child(),
            current_count=0,
        )

        with pytest.raises(CapacityExceededError, match=r'\(0/0\)'):
            await _assign(_use_case(mocks.uow_factory))

    @pytest.mark.asyncio
    async def test_seat_count_is_read_after_the_row_lock(self):
        mocks = RepositoryMocks(
            slot=make_slot(),
            vehicle_assignment=make_vehicle_assignment(),
            child=make_child(),
        )
        calls: list[str] = []
        repo = mocks.schedule_slot_command_repo
        repo.lock_vehicle_assignment.side_effect = lambda **_: (
            calls.append('lock') or make_vehicle_assignment()
        )
        repo.count_child_assignments.side_effect = lambda **_: calls.append('count') or 0

        await _assign(_use_case(mocks.uow_factory))

        assert calls == ['lock', 'count']


@pytest.mark.unit
class TestAssignChildDuplicates:
    @pytest.mark.asyncio
    async def test_child_already_in_slot_is_rejected_before_capacity(self):
        """
        Given: the child already holds a seat in this slot and the vehicle is full
        When: the child is assigned again
        Then: AlreadyAssigned, not CapacityExceeded, and nothing is inserted
        """
        existing = ChildAssignment(
            schedule_slot_id=SLOT_ID, child_id='child-1', vehicle_assignment_id=VA_ID
        )
        mocks = RepositoryMocks(
            slot=make_slot(),
            vehicle_assignment=make_vehicle_assignment(capacity=4),
            child=make_child(),
            current_count=4,
            existing_assignment=existing,
        )

        with pytest.raises(AlreadyAssignedError, match='Child already assigned to this slot'):
            await _assign(_use_case(mocks.uow_factory))

        mocks.schedule_slot_command_repo.create_child_assignment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_same_pair_twice_counts_once(self):
        store = InMemorySeatStore(
            slot=make_slot(), vehicle_assignments=[make_vehicle_assignment(capacity=4)]
        )
        store.add_child(make_child())
        use_case = _use_case(store.uow_factory)

        await _assign(use_case)
        with pytest.raises(AlreadyAssignedError):
            await _assign(use_case)

        assert store.count(VA_ID) == 1


@pytest.mark.unit
class TestAssignChildPreconditions:
    @pytest.mark.asyncio
    async def test_missing_slot(self):
        mocks = RepositoryMocks(slot=None)

        with pytest.raises(NotFoundError, match='Schedule slot not found'):
            await _assign(_use_case(mocks.uow_factory))

    @pytest.mark.asyncio
    async def test_past_slot_is_rejected_in_user_timezone(self):
        """
        Given: a slot one hour ago and a user in Europe/Paris
        When: a child is assigned
        Then: PastSlot with the slot time rendered in Paris time, no insert
        """
        mocks = RepositoryMocks(
            slot=make_slot(when=NOW - timedelta(hours=1)),
            vehicle_assignment=make_vehicle_assignment(),
            child=make_child(),
            user_timezone='Europe/Paris',
        )

        with pytest.raises(PastScheduleSlotError) as exc_info:
            await _assign(_use_case(mocks.uow_factory))

        # 07:00 UTC on 2026-10-19 is 09:00 in Paris (CEST)
        assert exc_info.value.message == (
            'Cannot assign children to schedule slots in the past '
            '(2026-10-19 09:00 in Europe/Paris)'
        )
        mocks.schedule_slot_command_repo.lock_vehicle_assignment.assert_not_awaited()
        mocks.schedule_slot_command_repo.create_child_assignment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_past_check_falls_back_to_group_timezone(self):
        mocks = RepositoryMocks(
            slot=make_slot(when=NOW - timedelta(minutes=5), group_timezone='America/New_York'),
            user_timezone=None,
        )

        with pytest.raises(PastScheduleSlotError, match='in America/New_York'):
            await _assign(_use_case(mocks.uow_factory))

    @pytest.mark.asyncio
    async def test_invalid_user_timezone_falls_back_to_group_timezone(self):
        """
        Given: a user whose stored timezone is not a valid zone name
        When: a child is assigned to a future slot
        Then: the group timezone is used and the assignment succeeds
        """
        mocks = RepositoryMocks(
            slot=make_slot(group_timezone='Europe/Paris'),
            vehicle_assignment=make_vehicle_assignment(),
            child=make_child(),
            user_timezone='Mars/Olympus_Mons',
        )

        assignment = await _assign(_use_case(mocks.uow_factory))

        assert assignment.child_id == 'child-1'
        assert mocks.uow.committed is True

    @pytest.mark.asyncio
    async def test_missing_child(self):
        mocks = RepositoryMocks(slot=make_slot(), child=None)

        with pytest.raises(NotFoundError, match='Child not found'):
            await _assign(_use_case(mocks.uow_factory))

    @pytest.mark.asyncio
    async def test_child_of_another_family(self):
        mocks = RepositoryMocks(slot=make_slot(), child=make_child(), can_access_child=False)

        with pytest.raises(ForbiddenError):
            await _assign(_use_case(mocks.uow_factory))

        mocks.schedule_slot_command_repo.lock_vehicle_assignment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_group_not_accessible(self):
        mocks = RepositoryMocks(slot=make_slot(), child=make_child(), can_access_group=False)

        with pytest.raises(ForbiddenError):
            await _assign(_use_case(mocks.uow_factory))

    @pytest.mark.asyncio
    async def test_vehicle_assignment_missing(self):
        mocks = RepositoryMocks(slot=make_slot(), child=make_child(), vehicle_assignment=None)

        with pytest.raises(
            NotFoundError, match='Vehicle assignment not found in this schedule slot'
        ):
            await _assign(_use_case(mocks.uow_factory))

    @pytest.mark.asyncio
    async def test_vehicle_assignment_of_another_slot(self):
        mocks = RepositoryMocks(
            slot=make_slot(),
            child=make_child(),
            vehicle_assignment=make_vehicle_assignment(slot_id='other-slot'),
        )

        with pytest.raises(
            NotFoundError, match='Vehicle assignment not found in this schedule slot'
        ):
            await _assign(_use_case(mocks.uow_factory))

        mocks.schedule_slot_command_repo.count_child_assignments.assert_not_awaited()


@pytest.mark.unit
class TestAssignChildConcurrency:
    @pytest.mark.asyncio
    async def test_two_requests_for_the_last_seat(self):
        """
        Given: capacity 4 with 3 children seated
        When: two different children are assigned concurrently
        Then: exactly one succeeds, the other gets 4/4, and 4 seats are taken
        """
        store = InMemorySeatStore(
            slot=make_slot(), vehicle_assignments=[make_vehicle_assignment(capacity=4)]
        )
        store.seat_existing(vehicle_assignment_id=VA_ID, count=3)
        store.add_child(make_child('child-a', 'Ava'))
        store.add_child(make_child('child-b', 'Ben'))
        use_case = _use_case(store.uow_factory)

        successes: list[ChildAssignment] = []
        failures: list[Exception] = []

        async def attempt(child_id: str) -> None:
            try:
                successes.append(await _assign(use_case, child_id))
            except CapacityExceededError as e:
                failures.append(e)

        async with anyio.create_task_group() as tg:
            tg.start_soon(attempt, 'child-a')
            tg.start_soon(attempt, 'child-b')

        assert len(successes) == 1
        assert len(failures) == 1
        assert '4/4' in str(failures[0])
        assert store.count(VA_ID) == 4

    @pytest.mark.asyncio
    async def test_invariant_holds_under_many_concurrent_requests(self):
        store = InMemorySeatStore(
            slot=make_slot(),
            vehicle_assignments=[make_vehicle_assignment(capacity=4, seat_override=6)],
        )
        for i in range(10):
            store.add_child(make_child(f'child-{i}', f'Child {i}'))
        use_case = _use_case(store.uow_factory)
        rejected: list[CapacityExceededError] = []

        async def attempt(child_id: str) -> None:
            try:
                await _assign(use_case, child_id)
            except CapacityExceededError as e:
                rejected.append(e)

        async with anyio.create_task_group() as tg:
            for i in range(10):
                tg.start_soon(attempt, f'child-{i}')

        assert store.count(VA_ID) == 6
        assert len(rejected) == 4
        assert all(e.current == 6 and e.effective == 6 for e in rejected)
