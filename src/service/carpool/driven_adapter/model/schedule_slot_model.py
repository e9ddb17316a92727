from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.platform.database.orm_db_setting import Base
from src.service.carpool.driven_adapter.model.user_model import new_id


if TYPE_CHECKING:
    from src.service.carpool.driven_adapter.model.child_model import ChildModel
    from src.service.carpool.driven_adapter.model.group_model import GroupModel
    from src.service.carpool.driven_adapter.model.user_model import UserModel
    from src.service.carpool.driven_adapter.model.vehicle_model import VehicleModel


class ScheduleSlotModel(Base):
    __tablename__ = 'schedule_slots'
    __table_args__ = (UniqueConstraint('group_id', 'datetime', name='uq_schedule_slot_group_datetime'),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    group_id: Mapped[str] = mapped_column(
        String(36), ForeignKey('groups.id', ondelete='CASCADE'), nullable=False, index=True
    )
    slot_datetime: Mapped[datetime] = mapped_column(
        'datetime', DateTime(timezone=True), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    group: Mapped['GroupModel'] = relationship('GroupModel', lazy='raise')
    vehicle_assignments: Mapped[List['ScheduleSlotVehicleModel']] = relationship(
        back_populates='schedule_slot',
        cascade='all, delete-orphan',
        passive_deletes=True,
        lazy='raise',
    )


class ScheduleSlotVehicleModel(Base):
    """Vehicle assignment. The row locked by the seat guard."""

    __tablename__ = 'schedule_slot_vehicles'
    __table_args__ = (
        UniqueConstraint('schedule_slot_id', 'vehicle_id', name='uq_schedule_slot_vehicle'),
        CheckConstraint('seat_override IS NULL OR seat_override >= 0', name='ck_seat_override'),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    schedule_slot_id: Mapped[str] = mapped_column(
        String(36), ForeignKey('schedule_slots.id', ondelete='CASCADE'), nullable=False, index=True
    )
    vehicle_id: Mapped[str] = mapped_column(
        String(36), ForeignKey('vehicles.id', ondelete='CASCADE'), nullable=False, index=True
    )
    driver_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey('users.id', ondelete='SET NULL'), nullable=True
    )
    seat_override: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    schedule_slot: Mapped['ScheduleSlotModel'] = relationship(
        back_populates='vehicle_assignments', lazy='raise'
    )
    vehicle: Mapped['VehicleModel'] = relationship('VehicleModel', lazy='raise')
    driver: Mapped[Optional['UserModel']] = relationship('UserModel', lazy='raise')
    child_assignments: Mapped[List['ScheduleSlotChildModel']] = relationship(
        back_populates='vehicle_assignment',
        cascade='all, delete-orphan',
        passive_deletes=True,
        lazy='raise',
    )


class ScheduleSlotChildModel(Base):
    """Child assignment. One seat per (slot, child)."""

    __tablename__ = 'schedule_slot_children'
    __table_args__ = (
        UniqueConstraint(
            'vehicle_assignment_id', 'child_id', name='uq_schedule_slot_child_vehicle'
        ),
    )

    schedule_slot_id: Mapped[str] = mapped_column(
        String(36), ForeignKey('schedule_slots.id', ondelete='CASCADE'), primary_key=True
    )
    child_id: Mapped[str] = mapped_column(
        String(36), ForeignKey('children.id', ondelete='CASCADE'), primary_key=True
    )
    vehicle_assignment_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey('schedule_slot_vehicles.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    child: Mapped['ChildModel'] = relationship('ChildModel', lazy='raise')
    vehicle_assignment: Mapped['ScheduleSlotVehicleModel'] = relationship(
        back_populates='child_assignments', lazy='raise'
    )
