"""
https://python-dependency-injector.ets-labs.org/index.html
https://python-dependency-injector.ets-labs.org/examples/fastapi-sqlalchemy.html
"""

from dependency_injector import containers, providers

from src.platform.config.core_setting import Settings
from src.platform.database.orm_db_setting import Database
from src.platform.database.unit_of_work import SqlAlchemyUnitOfWork
from src.platform.event.in_memory_broadcaster import InMemoryEventBroadcasterImpl
from src.service.carpool.driven_adapter.broadcaster.schedule_slot_broadcaster_impl import (
    ScheduleSlotBroadcasterImpl,
)
from src.service.carpool.driven_adapter.broadcaster.schedule_slot_notifier import (
    ScheduleSlotNotifier,
)
from src.service.carpool.driven_adapter.repo.authorization_query_repo_impl import (
    AuthorizationQueryRepoImpl,
)
from src.service.carpool.driven_adapter.repo.schedule_slot_query_repo_impl import (
    ScheduleSlotQueryRepoImpl,
)
from src.service.carpool.driving_adapter.http_controller.auth.jwt_auth import JwtAuth


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)

    # Database
    database = providers.Singleton(Database)

    # One unit of work (one transaction) per call; inject with `.provider` to get the factory
    unit_of_work = providers.Factory(
        SqlAlchemyUnitOfWork, session_factory=database.provided.session_factory
    )

    # Read-side repositories (own session per call)
    schedule_slot_query_repo = providers.Singleton(
        ScheduleSlotQueryRepoImpl, session_factory=database.provided.session
    )
    authorization_query_repo = providers.Singleton(
        AuthorizationQueryRepoImpl, session_factory=database.provided.session
    )

    # Real-time broadcast (process-local pub/sub, one instance per process)
    event_broadcaster = providers.Singleton(InMemoryEventBroadcasterImpl)
    schedule_slot_broadcaster = providers.Singleton(
        ScheduleSlotBroadcasterImpl, event_broadcaster=event_broadcaster
    )
    schedule_slot_notifier = providers.Singleton(
        ScheduleSlotNotifier, broadcaster=schedule_slot_broadcaster
    )

    # Auth service
    jwt_auth = providers.Singleton(JwtAuth)


container = Container()
