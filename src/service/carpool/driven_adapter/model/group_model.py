from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from src.platform.database.orm_db_setting import Base
from src.service.carpool.driven_adapter.model.user_model import new_id


class GroupModel(Base):
    __tablename__ = 'groups'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    family_id: Mapped[str] = mapped_column(
        String(36), ForeignKey('families.id', ondelete='CASCADE'), nullable=False, index=True
    )
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default='UTC')
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class GroupFamilyMemberModel(Base):
    __tablename__ = 'group_family_members'
    __table_args__ = (UniqueConstraint('family_id', 'group_id', name='uq_group_family_member'),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    family_id: Mapped[str] = mapped_column(
        String(36), ForeignKey('families.id', ondelete='CASCADE'), nullable=False, index=True
    )
    group_id: Mapped[str] = mapped_column(
        String(36), ForeignKey('groups.id', ondelete='CASCADE'), nullable=False, index=True
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False, default='member')


class GroupChildMemberModel(Base):
    __tablename__ = 'group_child_members'

    child_id: Mapped[str] = mapped_column(
        String(36), ForeignKey('children.id', ondelete='CASCADE'), primary_key=True
    )
    group_id: Mapped[str] = mapped_column(
        String(36), ForeignKey('groups.id', ondelete='CASCADE'), primary_key=True
    )
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
