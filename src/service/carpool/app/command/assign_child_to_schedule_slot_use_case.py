from datetime import datetime, timezone
import time
from typing import Callable, Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import (
    AlreadyAssignedError,
    CustomBaseError,
    ForbiddenError,
    NotFoundError,
)
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.carpool_metrics import (
    AssignmentResult,
    classify_assignment_error,
    metrics,
)
from src.service.carpool.domain.entity.child_assignment_entity import ChildAssignment
from src.service.carpool.domain.past_date_validator import assert_not_past, resolve_timezone


class AssignChildToScheduleSlotUseCase:
    """
    Seat a child in a vehicle of a schedule slot without ever over-booking it.

    Everything runs in one transaction. The vehicle assignment row is locked
    (SELECT ... FOR UPDATE) before its seats are counted, so concurrent requests
    for the same vehicle are serialized by the database: under READ COMMITTED the
    request that waited for the lock counts the winner's committed row.

    Flow:
    1. Slot exists and is not in the past (user timezone, else group, else UTC)
    2. Child exists, belongs to the caller's family; the family reaches the group
    3. Lock the vehicle assignment, which must belong to the slot
    4. Count seated children, reject duplicates, then reject a full vehicle
    5. Insert and commit

    Broadcasting the change is left to the caller.
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[[], AbstractUnitOfWork],
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.uow_factory = uow_factory
        self.now = now or (lambda: datetime.now(timezone.utc))
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        uow_factory: Callable[[], AbstractUnitOfWork] = Depends(
            Provide[Container.unit_of_work.provider]
        ),
    ) -> Self:
        return cls(uow_factory=uow_factory)

    @Logger.io
    async def execute(
        self,
        *,
        schedule_slot_id: str,
        child_id: str,
        vehicle_assignment_id: str,
        requesting_user_id: str,
    ) -> ChildAssignment:
        started = time.perf_counter()
        with self.tracer.start_as_current_span(
            'use_case.assign_child_to_schedule_slot',
            attributes={
                'schedule_slot.id': schedule_slot_id,
                'child.id': child_id,
                'vehicle_assignment.id': vehicle_assignment_id,
                'user.id': requesting_user_id,
            },
        ) as span:
            try:
                assignment = await self._assign(
                    schedule_slot_id=schedule_slot_id,
                    child_id=child_id,
                    vehicle_assignment_id=vehicle_assignment_id,
                    requesting_user_id=requesting_user_id,
                )
            except CustomBaseError as e:
                result = classify_assignment_error(e)
                span.set_attribute('assignment.result', result)
                metrics.record_assignment(result=result, duration=time.perf_counter() - started)
                raise

            span.set_attribute('assignment.result', AssignmentResult.SUCCESS)
            metrics.record_assignment(
                result=AssignmentResult.SUCCESS, duration=time.perf_counter() - started
            )
            Logger.base.info(
                f'🪑 [ASSIGN] Child {child_id} seated in vehicle assignment '
                f'{vehicle_assignment_id} (slot {schedule_slot_id})'
            )
            return assignment

    async def _assign(
        self,
        *,
        schedule_slot_id: str,
        child_id: str,
        vehicle_assignment_id: str,
        requesting_user_id: str,
    ) -> ChildAssignment:
        async with self.uow_factory() as uow:
            repo = uow.schedule_slot_command_repo
            auth = uow.authorization_query_repo

            slot = await repo.get_slot(schedule_slot_id=schedule_slot_id)
            if slot is None:
                raise NotFoundError('Schedule slot not found')

            user_timezone: Optional[str] = await auth.get_user_timezone(user_id=requesting_user_id)
            assert_not_past(
                slot.datetime,
                resolve_timezone(user_timezone, slot.group_timezone),
                action='assign children to schedule slots',
                now=self.now(),
            )

            child = await repo.get_child(child_id=child_id)
            if child is None:
                raise NotFoundError('Child not found')
            if not await auth.user_family_can_access_child(
                user_id=requesting_user_id, child_id=child_id
            ):
                raise ForbiddenError('Not authorized to assign this child')
            if not await auth.user_family_can_access_group(
                user_id=requesting_user_id, group_id=slot.group_id
            ):
                raise ForbiddenError('Not authorized to access this group')

            vehicle_assignment = await repo.lock_vehicle_assignment(
                vehicle_assignment_id=vehicle_assignment_id
            )
            if vehicle_assignment is None or vehicle_assignment.schedule_slot_id != slot.id:
                raise NotFoundError('Vehicle assignment not found in this schedule slot')

            # Counted while holding the row lock
            current_count = await repo.count_child_assignments(
                vehicle_assignment_id=vehicle_assignment_id
            )

            # One seat per child per slot, whichever vehicle it is in
            if await repo.find_child_assignment(
                schedule_slot_id=schedule_slot_id, child_id=child_id
            ):
                raise AlreadyAssignedError('Child already assigned to this slot')

            vehicle_assignment.ensure_seat_available(current_count=current_count)

            created = await repo.create_child_assignment(
                assignment=ChildAssignment.create(
                    schedule_slot_id=schedule_slot_id,
                    child_id=child_id,
                    vehicle_assignment_id=vehicle_assignment_id,
                )
            )
            await uow.commit()

        return created
