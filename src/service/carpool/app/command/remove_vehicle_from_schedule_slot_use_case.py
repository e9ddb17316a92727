from datetime import datetime, timezone
from typing import Callable, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import ForbiddenError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.carpool.app.dto.schedule_slot_dto import RemoveVehicleResult
from src.service.carpool.domain.past_date_validator import assert_not_past, resolve_timezone


class RemoveVehicleFromScheduleSlotUseCase:
    """
    Detach a vehicle (and every child seated in it) from a slot.
    The slot itself is deleted together with its last vehicle.
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
        self, *, schedule_slot_id: str, vehicle_id: str, requesting_user_id: str
    ) -> RemoveVehicleResult:
        with self.tracer.start_as_current_span(
            'use_case.remove_vehicle_from_schedule_slot',
            attributes={'schedule_slot.id': schedule_slot_id, 'vehicle.id': vehicle_id},
        ) as span:
            async with self.uow_factory() as uow:
                repo = uow.schedule_slot_command_repo
                auth = uow.authorization_query_repo

                # Two removals of the last vehicles queue here, so exactly one sees zero left
                slot = await repo.get_slot(schedule_slot_id=schedule_slot_id, for_update=True)
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

                vehicle_assignment = await repo.lock_vehicle_assignment_by_vehicle(
                    schedule_slot_id=schedule_slot_id, vehicle_id=vehicle_id
                )
                if vehicle_assignment is None:
                    raise NotFoundError('Vehicle not assigned to this schedule slot')

                await repo.delete_vehicle_assignment(vehicle_assignment_id=vehicle_assignment.id)

                remaining = await repo.count_vehicle_assignments(schedule_slot_id=schedule_slot_id)
                slot_deleted = remaining == 0
                if slot_deleted:
                    await repo.delete_slot(schedule_slot_id=schedule_slot_id)

                await uow.commit()

            span.set_attribute('schedule_slot.deleted', slot_deleted)
            Logger.base.info(
                f'🗑️ [SLOT] Vehicle {vehicle_id} removed from slot {schedule_slot_id}'
                + (' (slot deleted)' if slot_deleted else '')
            )
            return RemoveVehicleResult(
                schedule_slot_id=schedule_slot_id,
                group_id=slot.group_id,
                slot_deleted=slot_deleted,
            )
