"""
Schedule Slot Query Repository Implementation - read side, no locks
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncContextManager, AsyncIterator, Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.platform.logging.loguru_io import Logger
from src.service.carpool.app.interface.i_schedule_slot_query_repo import IScheduleSlotQueryRepo
from src.service.carpool.domain.entity.child_entity import Child
from src.service.carpool.domain.entity.schedule_slot_entity import ScheduleSlot
from src.service.carpool.driven_adapter.model.child_model import ChildModel
from src.service.carpool.driven_adapter.model.group_model import GroupChildMemberModel, GroupModel
from src.service.carpool.driven_adapter.model.schedule_slot_model import (
    ScheduleSlotChildModel,
    ScheduleSlotModel,
    ScheduleSlotVehicleModel,
)
from src.service.carpool.driven_adapter.repo.schedule_slot_mapper import to_child, to_schedule_slot


class ScheduleSlotQueryRepoImpl(IScheduleSlotQueryRepo):
    def __init__(
        self,
        session_factory: Callable[..., AsyncContextManager[AsyncSession]] | None = None,
        *,
        session: AsyncSession | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.session = session

    @asynccontextmanager
    async def _get_session(self) -> AsyncIterator[AsyncSession]:
        if self.session is not None:
            yield self.session
        elif self.session_factory is not None:
            async with self.session_factory() as session:
                yield session
        else:
            raise RuntimeError('No session or session_factory available')

    @staticmethod
    def _detailed_slot_query():
        vehicle_assignments = selectinload(ScheduleSlotModel.vehicle_assignments)
        return (
            select(ScheduleSlotModel, GroupModel.timezone)
            .join(GroupModel, GroupModel.id == ScheduleSlotModel.group_id)
            .options(
                vehicle_assignments.selectinload(ScheduleSlotVehicleModel.vehicle),
                vehicle_assignments.selectinload(ScheduleSlotVehicleModel.driver),
                vehicle_assignments.selectinload(
                    ScheduleSlotVehicleModel.child_assignments
                ).selectinload(ScheduleSlotChildModel.child),
            )
        )

    @staticmethod
    def _to_detailed_slot(slot_model: ScheduleSlotModel, group_timezone: str) -> ScheduleSlot:
        slot = to_schedule_slot(slot_model, group_timezone=group_timezone, with_assignments=True)
        # Stable order for API consumers
        slot.vehicle_assignments.sort(key=lambda va: (va.vehicle.name, va.id))
        for va in slot.vehicle_assignments:
            va.child_assignments.sort(key=lambda ca: ca.assigned_at)
        return slot

    @Logger.io
    async def get_slot_with_details(self, *, schedule_slot_id: str) -> Optional[ScheduleSlot]:
        async with self._get_session() as session:
            stmt = self._detailed_slot_query().where(ScheduleSlotModel.id == schedule_slot_id)
            row = (await session.execute(stmt)).first()
            if row is None:
                return None
            slot_model, group_timezone = row
            return self._to_detailed_slot(slot_model, group_timezone)

    @Logger.io
    async def list_group_slots(
        self, *, group_id: str, start: datetime, end: datetime
    ) -> List[ScheduleSlot]:
        async with self._get_session() as session:
            stmt = (
                self._detailed_slot_query()
                .where(
                    ScheduleSlotModel.group_id == group_id,
                    ScheduleSlotModel.slot_datetime >= start,
                    ScheduleSlotModel.slot_datetime <= end,
                )
                .order_by(ScheduleSlotModel.slot_datetime)
            )
            rows = (await session.execute(stmt)).all()
            return [
                self._to_detailed_slot(slot_model, group_timezone)
                for slot_model, group_timezone in rows
            ]

    @Logger.io
    async def list_available_children(
        self, *, schedule_slot_id: str, group_id: str, family_id: str
    ) -> List[Child]:
        async with self._get_session() as session:
            seated = select(ScheduleSlotChildModel.child_id).where(
                ScheduleSlotChildModel.schedule_slot_id == schedule_slot_id
            )
            stmt = (
                select(ChildModel)
                .join(GroupChildMemberModel, GroupChildMemberModel.child_id == ChildModel.id)
                .where(
                    ChildModel.family_id == family_id,
                    GroupChildMemberModel.group_id == group_id,
                    ChildModel.id.not_in(seated),
                )
                .order_by(ChildModel.name, ChildModel.id)
            )
            result = await session.execute(stmt)
            return [to_child(model) for model in result.scalars().all()]
