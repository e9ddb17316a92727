"""
Schedule Slot Command Repository Implementation

Bound to the session of a SqlAlchemyUnitOfWork. Nothing here commits: the
unit of work decides when the transaction ends.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.platform.database.unit_of_work import (
    FOREIGN_KEY_VIOLATION,
    UNIQUE_VIOLATION,
    get_sqlstate,
)
from src.platform.exception.exceptions import (
    AlreadyAssignedError,
    ConflictError,
    NotFoundError,
)
from src.platform.logging.loguru_io import Logger
from src.service.carpool.app.interface.i_schedule_slot_command_repo import (
    IScheduleSlotCommandRepo,
)
from src.service.carpool.domain.entity.child_assignment_entity import ChildAssignment
from src.service.carpool.domain.entity.child_entity import Child
from src.service.carpool.domain.entity.schedule_slot_entity import ScheduleSlot
from src.service.carpool.domain.entity.user_entity import User
from src.service.carpool.domain.entity.vehicle_assignment_entity import VehicleAssignment
from src.service.carpool.domain.entity.vehicle_entity import Vehicle
from src.service.carpool.driven_adapter.model.child_model import ChildModel
from src.service.carpool.driven_adapter.model.group_model import GroupModel
from src.service.carpool.driven_adapter.model.schedule_slot_model import (
    ScheduleSlotChildModel,
    ScheduleSlotModel,
    ScheduleSlotVehicleModel,
)
from src.service.carpool.driven_adapter.model.user_model import UserModel
from src.service.carpool.driven_adapter.model.vehicle_model import VehicleModel
from src.service.carpool.driven_adapter.repo.schedule_slot_mapper import (
    to_child,
    to_child_assignment,
    to_schedule_slot,
    to_user,
    to_vehicle,
    to_vehicle_assignment,
)


class ScheduleSlotCommandRepoImpl(IScheduleSlotCommandRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    # ------------------------------------------------------------------ slots

    async def _get_slot_by(self, *conditions, for_update: bool = False) -> Optional[ScheduleSlot]:
        stmt = (
            select(ScheduleSlotModel, GroupModel.timezone)
            .join(GroupModel, GroupModel.id == ScheduleSlotModel.group_id)
            .where(*conditions)
        )
        if for_update:
            # key_share=True renders FOR NO KEY UPDATE
            stmt = stmt.with_for_update(of=ScheduleSlotModel, key_share=True)
        row = (await self.session.execute(stmt)).first()
        if row is None:
            return None
        slot_model, group_timezone = row
        return to_schedule_slot(slot_model, group_timezone=group_timezone)

    @Logger.io
    async def get_slot(
        self, *, schedule_slot_id: str, for_update: bool = False
    ) -> Optional[ScheduleSlot]:
        return await self._get_slot_by(
            ScheduleSlotModel.id == schedule_slot_id, for_update=for_update
        )

    @Logger.io
    async def get_slot_by_group_and_datetime(
        self, *, group_id: str, slot_datetime: datetime, for_update: bool = False
    ) -> Optional[ScheduleSlot]:
        return await self._get_slot_by(
            ScheduleSlotModel.group_id == group_id,
            ScheduleSlotModel.slot_datetime == slot_datetime,
            for_update=for_update,
        )

    @Logger.io
    async def create_slot(self, *, slot: ScheduleSlot) -> ScheduleSlot:
        model = ScheduleSlotModel(id=slot.id, group_id=slot.group_id, slot_datetime=slot.datetime)
        self.session.add(model)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise ConflictError('A schedule slot already exists at this time') from e
        await self.session.refresh(model)
        return to_schedule_slot(model, group_timezone=slot.group_timezone)

    @Logger.io
    async def delete_slot(self, *, schedule_slot_id: str) -> None:
        await self.session.execute(
            delete(ScheduleSlotModel).where(ScheduleSlotModel.id == schedule_slot_id)
        )

    # ------------------------------------------------------ vehicle assignment

    def _vehicle_assignment_query(self):
        return select(ScheduleSlotVehicleModel).options(
            selectinload(ScheduleSlotVehicleModel.vehicle),
            selectinload(ScheduleSlotVehicleModel.driver),
        )

    @Logger.io
    async def lock_vehicle_assignment(
        self, *, vehicle_assignment_id: str
    ) -> Optional[VehicleAssignment]:
        # FOR UPDATE OF schedule_slot_vehicles only: vehicle and driver are loaded
        # by separate selectin queries, so concurrent guards queue on this one row
        stmt = (
            self._vehicle_assignment_query()
            .where(ScheduleSlotVehicleModel.id == vehicle_assignment_id)
            .with_for_update(of=ScheduleSlotVehicleModel)
            .execution_options(populate_existing=True)
        )
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return to_vehicle_assignment(model) if model else None

    @Logger.io
    async def lock_vehicle_assignment_by_vehicle(
        self, *, schedule_slot_id: str, vehicle_id: str
    ) -> Optional[VehicleAssignment]:
        stmt = (
            self._vehicle_assignment_query()
            .where(
                ScheduleSlotVehicleModel.schedule_slot_id == schedule_slot_id,
                ScheduleSlotVehicleModel.vehicle_id == vehicle_id,
            )
            .with_for_update(of=ScheduleSlotVehicleModel)
            .execution_options(populate_existing=True)
        )
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return to_vehicle_assignment(model) if model else None

    @Logger.io
    async def create_vehicle_assignment(
        self,
        *,
        schedule_slot_id: str,
        vehicle_id: str,
        driver_id: Optional[str],
        seat_override: Optional[int],
    ) -> VehicleAssignment:
        model = ScheduleSlotVehicleModel(
            schedule_slot_id=schedule_slot_id,
            vehicle_id=vehicle_id,
            driver_id=driver_id,
            seat_override=seat_override,
        )
        self.session.add(model)
        try:
            await self.session.flush()
        except IntegrityError as e:
            if get_sqlstate(e) == FOREIGN_KEY_VIOLATION:
                raise NotFoundError('Schedule slot, vehicle or driver not found') from e
            raise ConflictError('Vehicle is already assigned to this schedule slot') from e

        stmt = self._vehicle_assignment_query().where(ScheduleSlotVehicleModel.id == model.id)
        loaded = (await self.session.execute(stmt)).scalar_one()
        return to_vehicle_assignment(loaded)

    @Logger.io
    async def delete_vehicle_assignment(self, *, vehicle_assignment_id: str) -> None:
        # Seated children go first so the delete does not depend on FK cascade support
        await self.session.execute(
            delete(ScheduleSlotChildModel).where(
                ScheduleSlotChildModel.vehicle_assignment_id == vehicle_assignment_id
            )
        )
        await self.session.execute(
            delete(ScheduleSlotVehicleModel).where(
                ScheduleSlotVehicleModel.id == vehicle_assignment_id
            )
        )

    @Logger.io
    async def count_vehicle_assignments(self, *, schedule_slot_id: str) -> int:
        stmt = select(func.count()).where(
            ScheduleSlotVehicleModel.schedule_slot_id == schedule_slot_id
        )
        return int((await self.session.execute(stmt)).scalar_one())

    @Logger.io
    async def update_seat_override(
        self, *, vehicle_assignment_id: str, seat_override: Optional[int]
    ) -> None:
        await self.session.execute(
            update(ScheduleSlotVehicleModel)
            .where(ScheduleSlotVehicleModel.id == vehicle_assignment_id)
            .values(seat_override=seat_override)
        )

    @Logger.io
    async def update_vehicle_driver(
        self, *, vehicle_assignment_id: str, driver_id: Optional[str]
    ) -> None:
        await self.session.execute(
            update(ScheduleSlotVehicleModel)
            .where(ScheduleSlotVehicleModel.id == vehicle_assignment_id)
            .values(driver_id=driver_id)
        )

    @Logger.io
    async def driver_has_other_vehicle_in_slot(
        self,
        *,
        schedule_slot_id: str,
        driver_id: str,
        exclude_vehicle_assignment_id: Optional[str] = None,
    ) -> bool:
        stmt = select(ScheduleSlotVehicleModel.id).where(
            ScheduleSlotVehicleModel.schedule_slot_id == schedule_slot_id,
            ScheduleSlotVehicleModel.driver_id == driver_id,
        )
        if exclude_vehicle_assignment_id is not None:
            stmt = stmt.where(ScheduleSlotVehicleModel.id != exclude_vehicle_assignment_id)
        return (await self.session.execute(stmt.limit(1))).first() is not None

    # -------------------------------------------------------- child assignment

    @Logger.io
    async def count_child_assignments(self, *, vehicle_assignment_id: str) -> int:
        stmt = select(func.count()).where(
            ScheduleSlotChildModel.vehicle_assignment_id == vehicle_assignment_id
        )
        return int((await self.session.execute(stmt)).scalar_one())

    @Logger.io
    async def find_child_assignment(
        self, *, schedule_slot_id: str, child_id: str
    ) -> Optional[ChildAssignment]:
        stmt = (
            select(ScheduleSlotChildModel)
            .options(selectinload(ScheduleSlotChildModel.child))
            .where(
                ScheduleSlotChildModel.schedule_slot_id == schedule_slot_id,
                ScheduleSlotChildModel.child_id == child_id,
            )
        )
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return to_child_assignment(model) if model else None

    @Logger.io
    async def create_child_assignment(self, *, assignment: ChildAssignment) -> ChildAssignment:
        model = ScheduleSlotChildModel(
            schedule_slot_id=assignment.schedule_slot_id,
            child_id=assignment.child_id,
            vehicle_assignment_id=assignment.vehicle_assignment_id,
            assigned_at=assignment.assigned_at,
        )
        self.session.add(model)
        try:
            await self.session.flush()
        except IntegrityError as e:
            sqlstate = get_sqlstate(e)
            if sqlstate == UNIQUE_VIOLATION:
                raise AlreadyAssignedError('Child already assigned to this slot') from e
            if sqlstate == FOREIGN_KEY_VIOLATION:
                raise NotFoundError('Schedule slot, child or vehicle assignment not found') from e
            raise

        stmt = (
            select(ScheduleSlotChildModel, ScheduleSlotModel.group_id)
            .join(ScheduleSlotModel, ScheduleSlotModel.id == ScheduleSlotChildModel.schedule_slot_id)
            .options(
                selectinload(ScheduleSlotChildModel.child),
                selectinload(ScheduleSlotChildModel.vehicle_assignment).selectinload(
                    ScheduleSlotVehicleModel.vehicle
                ),
                selectinload(ScheduleSlotChildModel.vehicle_assignment).selectinload(
                    ScheduleSlotVehicleModel.driver
                ),
            )
            .where(
                ScheduleSlotChildModel.schedule_slot_id == assignment.schedule_slot_id,
                ScheduleSlotChildModel.child_id == assignment.child_id,
            )
            .execution_options(populate_existing=True)
        )
        loaded, group_id = (await self.session.execute(stmt)).one()
        return to_child_assignment(
            loaded,
            vehicle_assignment=to_vehicle_assignment(loaded.vehicle_assignment),
            group_id=group_id,
        )

    @Logger.io
    async def delete_child_assignment(self, *, schedule_slot_id: str, child_id: str) -> bool:
        result = await self.session.execute(
            delete(ScheduleSlotChildModel).where(
                ScheduleSlotChildModel.schedule_slot_id == schedule_slot_id,
                ScheduleSlotChildModel.child_id == child_id,
            )
        )
        return bool(result.rowcount)

    # ---------------------------------------------------------------- lookups

    @Logger.io
    async def get_child(self, *, child_id: str) -> Optional[Child]:
        model = await self.session.get(ChildModel, child_id)
        return to_child(model) if model else None

    @Logger.io
    async def get_vehicle(self, *, vehicle_id: str) -> Optional[Vehicle]:
        model = await self.session.get(VehicleModel, vehicle_id)
        return to_vehicle(model) if model else None

    @Logger.io
    async def get_user(self, *, user_id: str) -> Optional[User]:
        model = await self.session.get(UserModel, user_id)
        return to_user(model)
