from datetime import datetime, timezone
from typing import Callable, Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import ForbiddenError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.carpool.app.dto.schedule_slot_dto import VehicleAssignmentUpdateResult
from src.service.carpool.domain.entity.vehicle_assignment_entity import validate_seat_override
from src.service.carpool.domain.past_date_validator import assert_not_past, resolve_timezone


class UpdateSeatOverrideUseCase:
    """
    Change (or clear, with None) the seat override of a vehicle assignment.

    Takes the same row lock as the assignment guard, so an override can never slip
    between a concurrent guard's count and insert. Lowering the override below the
    number of children already seated is rejected.
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
        vehicle_assignment_id: str,
        seat_override: Optional[int],
        requesting_user_id: str,
    ) -> VehicleAssignmentUpdateResult:
        validate_seat_override(seat_override)

        with self.tracer.start_as_current_span(
            'use_case.update_seat_override',
            attributes={'vehicle_assignment.id': vehicle_assignment_id},
        ):
            async with self.uow_factory() as uow:
                repo = uow.schedule_slot_command_repo
                auth = uow.authorization_query_repo

                vehicle_assignment = await repo.lock_vehicle_assignment(
                    vehicle_assignment_id=vehicle_assignment_id
                )
                if vehicle_assignment is None:
                    raise NotFoundError('Vehicle assignment not found')

                slot = await repo.get_slot(schedule_slot_id=vehicle_assignment.schedule_slot_id)
                if slot is None:
                    raise NotFoundError('Schedule slot not found')
                if not await auth.user_family_can_access_group(
                    user_id=requesting_user_id, group_id=slot.group_id
                ):
                    raise ForbiddenError('Not authorized to access this group')

                user_timezone = await auth.get_user_timezone(user_id=requesting_user_id)
                assert_not_past(
                    slot.datetime,
                    resolve_timezone(user_timezone, slot.group_timezone),
                    action='modify trips',
                    now=self.now(),
                )

                current_count = await repo.count_child_assignments(
                    vehicle_assignment_id=vehicle_assignment_id
                )
                vehicle_assignment.ensure_override_fits(
                    seat_override=seat_override, current_count=current_count
                )

                await repo.update_seat_override(
                    vehicle_assignment_id=vehicle_assignment_id, seat_override=seat_override
                )
                await uow.commit()

            vehicle_assignment.seat_override = seat_override
            Logger.base.info(
                f'🔧 [SLOT] Seat override of {vehicle_assignment_id} set to {seat_override} '
                f'(effective {vehicle_assignment.effective_capacity})'
            )
            return VehicleAssignmentUpdateResult(
                vehicle_assignment=vehicle_assignment, group_id=slot.group_id
            )
