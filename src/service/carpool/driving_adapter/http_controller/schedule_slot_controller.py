from collections.abc import AsyncIterator
from typing import List, Optional

import anyio
from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query, status
from opentelemetry import trace
import orjson
from sse_starlette.sse import EventSourceResponse

from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.exception.exceptions import ForbiddenError
from src.platform.logging.loguru_io import Logger
from src.service.carpool.app.command.assign_child_to_schedule_slot_use_case import (
    AssignChildToScheduleSlotUseCase,
)
from src.service.carpool.app.command.create_schedule_slot_with_vehicle_use_case import (
    CreateScheduleSlotWithVehicleUseCase,
)
from src.service.carpool.app.command.remove_child_from_schedule_slot_use_case import (
    RemoveChildFromScheduleSlotUseCase,
)
from src.service.carpool.app.command.remove_vehicle_from_schedule_slot_use_case import (
    RemoveVehicleFromScheduleSlotUseCase,
)
from src.service.carpool.app.command.update_seat_override_use_case import (
    UpdateSeatOverrideUseCase,
)
from src.service.carpool.app.command.update_vehicle_driver_use_case import (
    UpdateVehicleDriverUseCase,
)
from src.service.carpool.app.interface.i_authorization_query_repo import IAuthorizationQueryRepo
from src.service.carpool.app.interface.i_schedule_slot_broadcaster import (
    IScheduleSlotBroadcaster,
)
from src.service.carpool.app.interface.i_schedule_slot_notifier import IScheduleSlotNotifier
from src.service.carpool.app.query.get_available_children_use_case import (
    GetAvailableChildrenUseCase,
)
from src.service.carpool.app.query.get_group_schedule_use_case import GetGroupScheduleUseCase
from src.service.carpool.app.query.get_schedule_slot_details_use_case import (
    GetScheduleSlotDetailsUseCase,
)
from src.service.carpool.domain.entity.user_entity import User
from src.service.carpool.driving_adapter.http_controller.auth.current_user import (
    get_current_user,
)
from src.service.carpool.driving_adapter.http_controller.schema.schedule_slot_schema import (
    AssignChildRequest,
    ChildAssignmentResponse,
    ChildResponse,
    GroupScheduleResponse,
    MessageResponse,
    RemoveVehicleResponse,
    ScheduleSlotCreateRequest,
    ScheduleSlotCreateResponse,
    ScheduleSlotResponse,
    SeatOverrideUpdateRequest,
    VehicleAssignmentResponse,
    VehicleDriverUpdateRequest,
)


router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.get('/groups/{group_id}')
@Logger.io
async def get_group_schedule(
    group_id: str,
    start: Optional[str] = Query(None, description='ISO-8601 range start, with `end`'),
    end: Optional[str] = Query(None, description='ISO-8601 range end, with `start`'),
    current_user: User = Depends(get_current_user),
    use_case: GetGroupScheduleUseCase = Depends(GetGroupScheduleUseCase.depends),
) -> GroupScheduleResponse:
    """Slots of the group in [start, end], the current week in the group timezone by default"""
    schedule = await use_case.execute(
        group_id=group_id, requesting_user_id=current_user.id, start=start, end=end
    )
    return GroupScheduleResponse.from_entity(schedule)


@router.post('/groups/{group_id}', status_code=status.HTTP_201_CREATED)
@Logger.io
@inject
async def create_schedule_slot(
    group_id: str,
    request: ScheduleSlotCreateRequest,
    current_user: User = Depends(get_current_user),
    use_case: CreateScheduleSlotWithVehicleUseCase = Depends(
        CreateScheduleSlotWithVehicleUseCase.depends
    ),
    notifier: IScheduleSlotNotifier = Depends(Provide[Container.schedule_slot_notifier]),
) -> ScheduleSlotCreateResponse:
    result = await use_case.execute(
        group_id=group_id,
        slot_datetime=request.datetime,
        vehicle_id=request.vehicle_id,
        requesting_user_id=current_user.id,
        driver_id=request.driver_id,
        seat_override=request.seat_override,
    )

    if result.slot_created:
        await notifier.on_schedule_slot_created(
            group_id=group_id, schedule_slot_id=result.schedule_slot.id
        )
    else:
        await notifier.on_schedule_slot_updated(
            group_id=group_id, schedule_slot_id=result.schedule_slot.id
        )

    return ScheduleSlotCreateResponse(
        schedule_slot=ScheduleSlotResponse.from_entity(result.schedule_slot),
        vehicle_assignment=VehicleAssignmentResponse.from_entity(result.vehicle_assignment),
        slot_created=result.slot_created,
    )


@router.get('/{schedule_slot_id}')
@Logger.io
async def get_schedule_slot(
    schedule_slot_id: str,
    current_user: User = Depends(get_current_user),
    use_case: GetScheduleSlotDetailsUseCase = Depends(GetScheduleSlotDetailsUseCase.depends),
) -> ScheduleSlotResponse:
    slot = await use_case.execute(
        schedule_slot_id=schedule_slot_id, requesting_user_id=current_user.id
    )
    return ScheduleSlotResponse.from_entity(slot)


@router.post('/{schedule_slot_id}/children', status_code=status.HTTP_201_CREATED)
@Logger.io
@inject
async def assign_child(
    schedule_slot_id: str,
    request: AssignChildRequest,
    current_user: User = Depends(get_current_user),
    use_case: AssignChildToScheduleSlotUseCase = Depends(AssignChildToScheduleSlotUseCase.depends),
    notifier: IScheduleSlotNotifier = Depends(Provide[Container.schedule_slot_notifier]),
) -> ChildAssignmentResponse:
    with tracer.start_as_current_span('controller.assign_child') as span:
        span.set_attribute('schedule_slot.id', schedule_slot_id)
        span.set_attribute('child.id', request.child_id)
        span.set_attribute('user.id', current_user.id)

        assignment = await use_case.execute(
            schedule_slot_id=schedule_slot_id,
            child_id=request.child_id,
            vehicle_assignment_id=request.vehicle_assignment_id,
            requesting_user_id=current_user.id,
        )

        # Only after commit; a failed broadcast never fails the request
        await notifier.on_child_assigned(assignment=assignment)

        return ChildAssignmentResponse.from_entity(assignment)


@router.delete('/{schedule_slot_id}/children/{child_id}')
@Logger.io
@inject
async def remove_child(
    schedule_slot_id: str,
    child_id: str,
    current_user: User = Depends(get_current_user),
    use_case: RemoveChildFromScheduleSlotUseCase = Depends(
        RemoveChildFromScheduleSlotUseCase.depends
    ),
    notifier: IScheduleSlotNotifier = Depends(Provide[Container.schedule_slot_notifier]),
) -> MessageResponse:
    slot = await use_case.execute(
        schedule_slot_id=schedule_slot_id,
        child_id=child_id,
        requesting_user_id=current_user.id,
    )
    await notifier.on_child_removed(
        group_id=slot.group_id, schedule_slot_id=schedule_slot_id, child_id=child_id
    )
    return MessageResponse(message='Child removed from schedule slot')


@router.get('/{schedule_slot_id}/available-children')
@Logger.io
async def get_available_children(
    schedule_slot_id: str,
    current_user: User = Depends(get_current_user),
    use_case: GetAvailableChildrenUseCase = Depends(GetAvailableChildrenUseCase.depends),
) -> List[ChildResponse]:
    children = await use_case.execute(
        schedule_slot_id=schedule_slot_id, requesting_user_id=current_user.id
    )
    return [ChildResponse.from_entity(child) for child in children]


@router.delete('/{schedule_slot_id}/vehicles/{vehicle_id}')
@Logger.io
@inject
async def remove_vehicle(
    schedule_slot_id: str,
    vehicle_id: str,
    current_user: User = Depends(get_current_user),
    use_case: RemoveVehicleFromScheduleSlotUseCase = Depends(
        RemoveVehicleFromScheduleSlotUseCase.depends
    ),
    notifier: IScheduleSlotNotifier = Depends(Provide[Container.schedule_slot_notifier]),
) -> RemoveVehicleResponse:
    result = await use_case.execute(
        schedule_slot_id=schedule_slot_id,
        vehicle_id=vehicle_id,
        requesting_user_id=current_user.id,
    )

    if result.slot_deleted:
        await notifier.on_schedule_slot_deleted(
            group_id=result.group_id, schedule_slot_id=schedule_slot_id
        )
    else:
        await notifier.on_schedule_slot_updated(
            group_id=result.group_id, schedule_slot_id=schedule_slot_id
        )

    return RemoveVehicleResponse(
        schedule_slot_id=result.schedule_slot_id, slot_deleted=result.slot_deleted
    )


@router.patch('/{schedule_slot_id}/vehicles/{vehicle_id}/driver')
@Logger.io
@inject
async def update_vehicle_driver(
    schedule_slot_id: str,
    vehicle_id: str,
    request: VehicleDriverUpdateRequest,
    current_user: User = Depends(get_current_user),
    use_case: UpdateVehicleDriverUseCase = Depends(UpdateVehicleDriverUseCase.depends),
    notifier: IScheduleSlotNotifier = Depends(Provide[Container.schedule_slot_notifier]),
) -> VehicleAssignmentResponse:
    result = await use_case.execute(
        schedule_slot_id=schedule_slot_id,
        vehicle_id=vehicle_id,
        driver_id=request.driver_id,
        requesting_user_id=current_user.id,
    )
    await notifier.on_schedule_slot_updated(
        group_id=result.group_id, schedule_slot_id=schedule_slot_id
    )
    return VehicleAssignmentResponse.from_entity(result.vehicle_assignment)


@router.patch('/vehicle-assignments/{vehicle_assignment_id}/seat-override')
@Logger.io
@inject
async def update_seat_override(
    vehicle_assignment_id: str,
    request: SeatOverrideUpdateRequest,
    current_user: User = Depends(get_current_user),
    use_case: UpdateSeatOverrideUseCase = Depends(UpdateSeatOverrideUseCase.depends),
    notifier: IScheduleSlotNotifier = Depends(Provide[Container.schedule_slot_notifier]),
) -> VehicleAssignmentResponse:
    result = await use_case.execute(
        vehicle_assignment_id=vehicle_assignment_id,
        seat_override=request.seat_override,
        requesting_user_id=current_user.id,
    )
    await notifier.on_schedule_slot_updated(
        group_id=result.group_id,
        schedule_slot_id=result.vehicle_assignment.schedule_slot_id,
    )
    return VehicleAssignmentResponse.from_entity(result.vehicle_assignment)


# ============================ SSE Endpoint ============================


@router.get('/groups/{group_id}/sse', status_code=status.HTTP_200_OK)
@Logger.io
@inject
async def stream_group_schedule(
    group_id: str,
    current_user: User = Depends(get_current_user),
    authorization_repo: IAuthorizationQueryRepo = Depends(
        Provide[Container.authorization_query_repo]
    ),
    broadcaster: IScheduleSlotBroadcaster = Depends(Provide[Container.schedule_slot_broadcaster]),
) -> EventSourceResponse:
    """
    SSE real-time schedule updates for one group

    Architecture: Controller → Notifier → In-memory broadcaster → SSE Endpoint → Client

    Channel: schedule_slots:{group_id}
    """
    if not await authorization_repo.user_family_can_access_group(
        user_id=current_user.id, group_id=group_id
    ):
        raise ForbiddenError('Not authorized to access this group')

    stream = await broadcaster.subscribe(group_id=group_id)
    user_id = current_user.id
    Logger.base.info(f'📡 [SSE] Client subscribing to group={group_id}, user={user_id}')

    async def event_generator() -> AsyncIterator[dict[str, str]]:
        try:
            yield {
                'event': 'connected',
                'data': orjson.dumps({'group_id': group_id}).decode(),
            }
            async for event_data in stream:
                yield {
                    'event': event_data['event_type'],
                    'data': orjson.dumps(event_data).decode(),
                }
                Logger.base.debug(
                    f'📡 [SSE] Sent {event_data["event_type"]} to user={user_id}, group={group_id}'
                )
        except anyio.get_cancelled_exc_class():
            Logger.base.info(f'🔌 [SSE] Client disconnected: group={group_id}, user={user_id}')
            raise
        finally:
            with anyio.CancelScope(shield=True):
                await broadcaster.unsubscribe(group_id=group_id, stream=stream)

    return EventSourceResponse(event_generator(), ping=settings.SSE_PING_SECONDS)
