from datetime import datetime, timezone
from typing import Callable, Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import DomainError, ForbiddenError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.carpool.app.dto.schedule_slot_dto import GroupSchedule
from src.service.carpool.app.interface.i_authorization_query_repo import IAuthorizationQueryRepo
from src.service.carpool.app.interface.i_schedule_slot_query_repo import IScheduleSlotQueryRepo
from src.service.carpool.domain.past_date_validator import (
    parse_schedule_slot_datetime,
    resolve_timezone,
    week_boundaries,
)


class GetGroupScheduleUseCase:
    """
    Slots of a group over a date range, each with its capacity summary.

    Without an explicit `start` and `end` the range is the current ISO week
    in the group's timezone. This is the read clients refresh on `schedule_updated`.
    """

    def __init__(
        self,
        *,
        schedule_slot_query_repo: IScheduleSlotQueryRepo,
        authorization_query_repo: IAuthorizationQueryRepo,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.schedule_slot_query_repo = schedule_slot_query_repo
        self.authorization_query_repo = authorization_query_repo
        self.now = now or (lambda: datetime.now(timezone.utc))

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
    async def execute(
        self,
        *,
        group_id: str,
        requesting_user_id: str,
        start: Optional[str | datetime] = None,
        end: Optional[str | datetime] = None,
    ) -> GroupSchedule:
        group_timezone = await self.authorization_query_repo.get_group_timezone(group_id=group_id)
        if group_timezone is None:
            raise NotFoundError('Group not found')
        if not await self.authorization_query_repo.user_family_can_access_group(
            user_id=requesting_user_id, group_id=group_id
        ):
            raise ForbiddenError('Not authorized to access this group')

        if start is not None and end is not None:
            range_start = parse_schedule_slot_datetime(start)
            range_end = parse_schedule_slot_datetime(end)
            if range_end < range_start:
                raise DomainError('End date must not be before start date')
        else:
            range_start, range_end = week_boundaries(self.now(), resolve_timezone(group_timezone))

        slots = await self.schedule_slot_query_repo.list_group_slots(
            group_id=group_id, start=range_start, end=range_end
        )
        Logger.base.info(
            f'📅 [SCHEDULE] group={group_id}: {len(slots)} slots '
            f'from {range_start.isoformat()} to {range_end.isoformat()}'
        )
        return GroupSchedule(
            group_id=group_id, start=range_start, end=range_end, schedule_slots=slots
        )
