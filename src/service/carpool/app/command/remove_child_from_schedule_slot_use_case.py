from datetime import datetime, timezone
from typing import Callable, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import ForbiddenError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.carpool.domain.entity.schedule_slot_entity import ScheduleSlot
from src.service.carpool.domain.past_date_validator import assert_not_past, resolve_timezone


class RemoveChildFromScheduleSlotUseCase:
    """Free the seat a child holds in a slot. Returns the slot so the caller can notify its group."""

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
        self, *, schedule_slot_id: str, child_id: str, requesting_user_id: str
    ) -> ScheduleSlot:
        with self.tracer.start_as_current_span(
            'use_case.remove_child_from_schedule_slot',
            attributes={'schedule_slot.id': schedule_slot_id, 'child.id': child_id},
        ):
            async with self.uow_factory() as uow:
                repo = uow.schedule_slot_command_repo
                auth = uow.authorization_query_repo

                slot = await repo.get_slot(schedule_slot_id=schedule_slot_id)
                if slot is None:
                    raise NotFoundError('Schedule slot not found')

                user_timezone = await auth.get_user_timezone(user_id=requesting_user_id)
                assert_not_past(
                    slot.datetime,
                    resolve_timezone(user_timezone, slot.group_timezone),
                    action='modify trips',
                    now=self.now(),
                )

                if await repo.get_child(child_id=child_id) is None:
                    raise NotFoundError('Child not found')
                if not await auth.user_family_can_access_child(
                    user_id=requesting_user_id, child_id=child_id
                ):
                    raise ForbiddenError('Not authorized to remove this child')
                if not await auth.user_family_can_access_group(
                    user_id=requesting_user_id, group_id=slot.group_id
                ):
                    raise ForbiddenError('Not authorized to access this group')

                removed = await repo.delete_child_assignment(
                    schedule_slot_id=schedule_slot_id, child_id=child_id
                )
                if not removed:
                    raise NotFoundError('Child assignment not found')

                await uow.commit()

            Logger.base.info(f'🚪 [ASSIGN] Child {child_id} removed from slot {schedule_slot_id}')
            return slot
