from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import ForbiddenError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.carpool.app.interface.i_authorization_query_repo import IAuthorizationQueryRepo
from src.service.carpool.app.interface.i_schedule_slot_query_repo import IScheduleSlotQueryRepo
from src.service.carpool.domain.entity.schedule_slot_entity import ScheduleSlot


class GetScheduleSlotDetailsUseCase:
    def __init__(
        self,
        *,
        schedule_slot_query_repo: IScheduleSlotQueryRepo,
        authorization_query_repo: IAuthorizationQueryRepo,
    ) -> None:
        self.schedule_slot_query_repo = schedule_slot_query_repo
        self.authorization_query_repo = authorization_query_repo

    @classmethod
    @inject
    def depends(
        cls,
        schedule_slot_query_repo: IScheduleSlotQueryRepo = Depends(
            Provide[Container.schedule_slot_query_repo]
        ),
        authorization_query_repo: IAuthorizationQueryRepo = Depends(
            Provide[Container.authorization_query_repo]
        ),
    ) -> Self:
        return cls(
            schedule_slot_query_repo=schedule_slot_query_repo,
            authorization_query_repo=authorization_query_repo,
        )

    @Logger.io
    async def execute(self, *, schedule_slot_id: str, requesting_user_id: str) -> ScheduleSlot:
        """Slot with vehicles, drivers and seated children"""
        slot = await self.schedule_slot_query_repo.get_slot_with_details(
            schedule_slot_id=schedule_slot_id
        )
        if slot is None:
            raise NotFoundError('Schedule slot not found')

        if not await self.authorization_query_repo.user_family_can_access_group(
            user_id=requesting_user_id, group_id=slot.group_id
        ):
            raise ForbiddenError('Not authorized to access this group')

        Logger.base.info(
            f'📋 [SLOT] {schedule_slot_id}: {slot.occupied_seats}/{slot.total_capacity} seats taken '
            f'across {len(slot.vehicle_assignments)} vehicles'
        )
        return slot
