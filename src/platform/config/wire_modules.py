"""
Wire Modules Configuration

Defines the modules that need dependency injection wiring.
Shared between production and test environments.
"""

from types import ModuleType

from src.service.carpool.app.command import (
    assign_child_to_schedule_slot_use_case,
    create_schedule_slot_with_vehicle_use_case,
    remove_child_from_schedule_slot_use_case,
    remove_vehicle_from_schedule_slot_use_case,
    update_seat_override_use_case,
    update_vehicle_driver_use_case,
)
from src.service.carpool.app.query import (
    get_available_children_use_case,
    get_group_schedule_use_case,
    get_schedule_slot_details_use_case,
)
from src.service.carpool.driving_adapter.http_controller import schedule_slot_controller
from src.service.carpool.driving_adapter.http_controller.auth import current_user


WIRE_MODULES: list[ModuleType] = [
    assign_child_to_schedule_slot_use_case,
    remove_child_from_schedule_slot_use_case,
    create_schedule_slot_with_vehicle_use_case,
    remove_vehicle_from_schedule_slot_use_case,
    update_seat_override_use_case,
    update_vehicle_driver_use_case,
    get_available_children_use_case,
    get_group_schedule_use_case,
    get_schedule_slot_details_use_case,
    schedule_slot_controller,
    current_user,
]
