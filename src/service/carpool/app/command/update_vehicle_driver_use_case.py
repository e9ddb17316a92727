from datetime import datetime, timezone
from typing import Callable, Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import ConflictError, ForbiddenError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.carpool.app.dto.schedule_slot_dto import VehicleAssignmentUpdateResult
from src.service.carpool.domain.past_date_validator import assert_not_past, resolve_timezone


class UpdateVehicleDriverUseCase:
    """
    Assign (or clear, with None) the driver of a vehicle in a slot.

    The slot row is locked first, like the vehicle removal, so two vehicles of
    the same slot cannot be handed to one driver concurrently.
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
        vehicle_id: str,
        driver_id: Optional[str],
        requesting_user_id: str,
    ) -> VehicleAssignmentUpdateResult:
        with self.tracer.start_as_current_span(
            'use_case.update_vehicle_driver',
            attributes={'schedule_slot.id': schedule_slot_id, 'vehicle.id': vehicle_id},
        ):
            async with self.uow_factory() as uow:
                repo = uow.schedule_slot_command_repo
                auth = uow.authorization_query_repo

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

                driver = None
                if driver_id is not None:
                    driver = await repo.get_user(user_id=driver_id)
                    if driver is None:
                        raise NotFoundError('Driver not found')
                    if await repo.driver_has_other_vehicle_in_slot(
                        schedule_slot_id=schedule_slot_id,
                        driver_id=driver_id,
                        exclude_vehicle_assignment_id=vehicle_assignment.id,
                    ):
                        raise ConflictError('Driver is already driving another vehicle at this time')

                await repo.update_vehicle_driver(
                    vehicle_assignment_id=vehicle_assignment.id, driver_id=driver_id
                )
                await uow.commit()

            vehicle_assignment.driver = driver
            Logger.base.info(
                f'🚗 [SLOT] Driver of vehicle {vehicle_id} in slot {schedule_slot_id} '
                f'set to {driver_id}'
            )
            return VehicleAssignmentUpdateResult(
                vehicle_assignment=vehicle_assignment, group_id=slot.group_id
            )
