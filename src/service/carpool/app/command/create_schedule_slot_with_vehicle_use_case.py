from datetime import datetime, timezone
from typing import Callable, Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import ConflictError, ForbiddenError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.carpool.app.dto.schedule_slot_dto import CreateScheduleSlotResult
from src.service.carpool.domain.entity.schedule_slot_entity import ScheduleSlot
from src.service.carpool.domain.entity.vehicle_assignment_entity import validate_seat_override
from src.service.carpool.domain.past_date_validator import (
    assert_not_past,
    parse_schedule_slot_datetime,
    resolve_timezone,
)


class CreateScheduleSlotWithVehicleUseCase:
    """
    Attach a vehicle to the group's slot at `slot_datetime`, creating the slot if needed.

    A slot never exists without a vehicle, so slot creation only happens here.
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
        group_id: str,
        slot_datetime: str | datetime,
        vehicle_id: str,
        requesting_user_id: str,
        driver_id: Optional[str] = None,
        seat_override: Optional[int] = None,
    ) -> CreateScheduleSlotResult:
        # Input validation before opening a transaction
        when = parse_schedule_slot_datetime(slot_datetime)
        validate_seat_override(seat_override)

        with self.tracer.start_as_current_span(
            'use_case.create_schedule_slot_with_vehicle',
            attributes={'group.id': group_id, 'vehicle.id': vehicle_id},
        ) as span:
            async with self.uow_factory() as uow:
                repo = uow.schedule_slot_command_repo
                auth = uow.authorization_query_repo

                group_timezone = await auth.get_group_timezone(group_id=group_id)
                if group_timezone is None:
                    raise NotFoundError('Group not found')
                if not await auth.user_family_can_access_group(
                    user_id=requesting_user_id, group_id=group_id
                ):
                    raise ForbiddenError('Not authorized to access this group')

                user_timezone = await auth.get_user_timezone(user_id=requesting_user_id)
                assert_not_past(
                    when,
                    resolve_timezone(user_timezone, group_timezone),
                    action='create trips',
                    now=self.now(),
                )

                vehicle = await repo.get_vehicle(vehicle_id=vehicle_id)
                if vehicle is None:
                    raise NotFoundError('Vehicle not found')
                family_id = await auth.get_user_family_id(user_id=requesting_user_id)
                if vehicle.family_id != family_id:
                    raise ForbiddenError('Not authorized to use this vehicle')

                if driver_id is not None and await repo.get_user(user_id=driver_id) is None:
                    raise NotFoundError('Driver not found')

                # Queues behind a removal of the last vehicle, which may delete the slot
                slot = await repo.get_slot_by_group_and_datetime(
                    group_id=group_id, slot_datetime=when, for_update=True
                )
                slot_created = slot is None
                if slot is None:
                    slot = await repo.create_slot(
                        slot=ScheduleSlot.create(group_id=group_id, slot_datetime=when)
                    )
                elif driver_id is not None and await repo.driver_has_other_vehicle_in_slot(
                    schedule_slot_id=slot.id, driver_id=driver_id
                ):
                    raise ConflictError('Driver is already driving another vehicle at this time')
                slot.group_timezone = group_timezone

                vehicle_assignment = await repo.create_vehicle_assignment(
                    schedule_slot_id=slot.id,
                    vehicle_id=vehicle_id,
                    driver_id=driver_id,
                    seat_override=seat_override,
                )
                slot.vehicle_assignments.append(vehicle_assignment)

                await uow.commit()

            span.set_attribute('schedule_slot.id', slot.id)
            span.set_attribute('schedule_slot.created', slot_created)
            Logger.base.info(
                f'✅ [SLOT] Vehicle {vehicle.name} added to slot {slot.id} '
                f'({"new slot" if slot_created else "existing slot"})'
            )
            return CreateScheduleSlotResult(
                schedule_slot=slot,
                vehicle_assignment=vehicle_assignment,
                slot_created=slot_created,
            )
