"""
Authorization Query Repository Implementation

Family-based access rules:
- a user acts through the family they are a member of
- a family reaches a child it owns
- a family reaches a group it owns or has joined
"""

from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator, Callable, Optional

from sqlalchemy import exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.logging.loguru_io import Logger
from src.service.carpool.app.interface.i_authorization_query_repo import IAuthorizationQueryRepo
from src.service.carpool.driven_adapter.model.child_model import ChildModel
from src.service.carpool.driven_adapter.model.family_model import FamilyMemberModel
from src.service.carpool.driven_adapter.model.group_model import (
    GroupFamilyMemberModel,
    GroupModel,
)
from src.service.carpool.driven_adapter.model.user_model import UserModel


class AuthorizationQueryRepoImpl(IAuthorizationQueryRepo):
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

    @Logger.io
    async def get_user_family_id(self, *, user_id: str) -> Optional[str]:
        async with self._get_session() as session:
            result = await session.execute(
                select(FamilyMemberModel.family_id).where(FamilyMemberModel.user_id == user_id)
            )
            return result.scalars().first()

    @Logger.io
    async def user_family_can_access_child(self, *, user_id: str, child_id: str) -> bool:
        async with self._get_session() as session:
            stmt = select(
                exists().where(
                    ChildModel.id == child_id,
                    ChildModel.family_id == FamilyMemberModel.family_id,
                    FamilyMemberModel.user_id == user_id,
                )
            )
            return bool((await session.execute(stmt)).scalar())

    @Logger.io
    async def user_family_can_access_group(self, *, user_id: str, group_id: str) -> bool:
        async with self._get_session() as session:
            user_families = select(FamilyMemberModel.family_id).where(
                FamilyMemberModel.user_id == user_id
            )
            owns_group = exists().where(
                GroupModel.id == group_id, GroupModel.family_id.in_(user_families)
            )
            joined_group = exists().where(
                GroupFamilyMemberModel.group_id == group_id,
                GroupFamilyMemberModel.family_id.in_(user_families),
            )
            stmt = select(or_(owns_group, joined_group))
            return bool((await session.execute(stmt)).scalar())

    @Logger.io
    async def get_user_timezone(self, *, user_id: str) -> Optional[str]:
        async with self._get_session() as session:
            result = await session.execute(
                select(UserModel.timezone).where(UserModel.id == user_id)
            )
            return result.scalar_one_or_none()

    @Logger.io
    async def get_group_timezone(self, *, group_id: str) -> Optional[str]:
        async with self._get_session() as session:
            result = await session.execute(
                select(GroupModel.timezone).where(GroupModel.id == group_id)
            )
            return result.scalar_one_or_none()
