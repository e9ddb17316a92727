from typing import List, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.carpool.app.interface.i_authorization_query_repo import IAuthorizationQueryRepo
from src.service.carpool.app.interface.i_schedule_slot_query_repo import IScheduleSlotQueryRepo
from src.service.carpool.domain.entity.child_entity import Child


class GetAvailableChildrenUseCase:
    """Children of the caller's family that belong to the group and have no seat in the slot yet."""

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
    async def execute(self, *, schedule_slot_id: str, requesting_user_id: str) -> List[Child]:
        slot = await self.schedule_slot_query_repo.get_slot_with_details(
            schedule_slot_id=schedule_slot_id
        )
        if slot is None:
            raise NotFoundError('Schedule slot not found')

        family_id = await self.authorization_query_repo.get_user_family_id(
            user_id=requesting_user_id
        )
        if family_id is None:
            return []

        children = await self.schedule_slot_query_repo.list_available_children(
            schedule_slot_id=schedule_slot_id, group_id=slot.group_id, family_id=family_id
        )
        Logger.base.info(f'✅ [SLOT] {len(children)} children available for slot {schedule_slot_id}')
        return children
