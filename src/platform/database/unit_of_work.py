"""
Unit of Work Pattern - one database transaction shared by the repositories of a use case

Architecture:
- UoW owns the session lifecycle and commit/rollback
- Repositories obtain the shared session through the UoW
- Database errors caused by concurrent writers surface as TransactionConflictError
"""

from __future__ import annotations

import abc
from types import TracebackType
from typing import TYPE_CHECKING, Callable, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import TransactionConflictError
from src.platform.logging.loguru_io import Logger


if TYPE_CHECKING:
    from src.service.carpool.app.interface.i_authorization_query_repo import (
        IAuthorizationQueryRepo,
    )
    from src.service.carpool.app.interface.i_schedule_slot_command_repo import (
        IScheduleSlotCommandRepo,
    )


# serialization_failure, deadlock_detected, lock_not_available
CONFLICT_SQLSTATES = frozenset({'40001', '40P01', '55P03'})
UNIQUE_VIOLATION = '23505'
FOREIGN_KEY_VIOLATION = '23503'


def get_sqlstate(exc: BaseException) -> Optional[str]:
    orig = getattr(exc, 'orig', None)
    for candidate in (orig, getattr(orig, '__cause__', None)):
        sqlstate = getattr(candidate, 'sqlstate', None) or getattr(candidate, 'pgcode', None)
        if sqlstate:
            return str(sqlstate)
    return None


def translate_db_error(exc: BaseException) -> Optional[TransactionConflictError]:
    if not isinstance(exc, DBAPIError):
        return None
    sqlstate = get_sqlstate(exc)
    if sqlstate not in CONFLICT_SQLSTATES:
        return None
    Logger.base.warning(f'⚠️ [UoW] Transaction aborted by concurrent writer (sqlstate={sqlstate})')
    return TransactionConflictError(
        'The request conflicted with a concurrent update, please try again'
    )


class AbstractUnitOfWork(abc.ABC):
    """
    Usage:
        async with uow:
            slot = await uow.schedule_slot_command_repo.get_slot(schedule_slot_id=...)
            await uow.commit()

    Leaving the block without commit rolls the transaction back.
    """

    schedule_slot_command_repo: IScheduleSlotCommandRepo
    authorization_query_repo: IAuthorizationQueryRepo

    async def __aenter__(self) -> AbstractUnitOfWork:
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        await self.rollback()

    async def commit(self) -> None:
        await self._commit()

    @abc.abstractmethod
    async def _commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def rollback(self) -> None:
        raise NotImplementedError


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    """Opens one AsyncSession per `async with` block and binds the repositories to it."""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        *,
        lock_timeout_ms: Optional[int] = None,
    ) -> None:
        self._session_factory = session_factory
        self._lock_timeout_ms = (
            settings.DB_LOCK_TIMEOUT_MS if lock_timeout_ms is None else lock_timeout_ms
        )
        self.session: Optional[AsyncSession] = None

    async def __aenter__(self) -> SqlAlchemyUnitOfWork:
        from src.service.carpool.driven_adapter.repo.authorization_query_repo_impl import (
            AuthorizationQueryRepoImpl,
        )
        from src.service.carpool.driven_adapter.repo.schedule_slot_command_repo_impl import (
            ScheduleSlotCommandRepoImpl,
        )

        self.session = self._session_factory()
        # Bounded wait for row locks held by other transactions (SQLSTATE 55P03 on expiry)
        await self.session.execute(text(f'SET LOCAL lock_timeout = {int(self._lock_timeout_ms)}'))

        self.schedule_slot_command_repo = ScheduleSlotCommandRepoImpl(session=self.session)
        self.authorization_query_repo = AuthorizationQueryRepoImpl(session=self.session)

        await super().__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        try:
            await super().__aexit__(exc_type, exc_val, exc_tb)
        finally:
            if self.session is not None:
                await self.session.close()
                self.session = None

        if exc_val is not None and (conflict := translate_db_error(exc_val)) is not None:
            raise conflict from exc_val

    async def _commit(self) -> None:
        assert self.session is not None, 'commit() called outside of `async with`'
        try:
            await self.session.commit()
        except DBAPIError as e:
            if (conflict := translate_db_error(e)) is not None:
                raise conflict from e
            raise

    async def rollback(self) -> None:
        if self.session is not None:
            await self.session.rollback()


def get_unit_of_work_factory(
    session_factory: Callable[[], AsyncSession],
) -> Callable[[], AbstractUnitOfWork]:
    """Each use case call opens its own unit of work (one transaction per request)."""

    def _factory() -> AbstractUnitOfWork:
        return SqlAlchemyUnitOfWork(session_factory)

    return _factory
