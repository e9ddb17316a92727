"""
Database Models

Import all models here to ensure they are registered with SQLAlchemy
"""

from src.service.carpool.driven_adapter.model.child_model import ChildModel
from src.service.carpool.driven_adapter.model.family_model import FamilyMemberModel, FamilyModel
from src.service.carpool.driven_adapter.model.group_model import (
    GroupChildMemberModel,
    GroupFamilyMemberModel,
    GroupModel,
)
from src.service.carpool.driven_adapter.model.schedule_slot_model import (
    ScheduleSlotChildModel,
    ScheduleSlotModel,
    ScheduleSlotVehicleModel,
)
from src.service.carpool.driven_adapter.model.user_model import UserModel
from src.service.carpool.driven_adapter.model.vehicle_model import VehicleModel

__all__ = [
    'ChildModel',
    'FamilyMemberModel',
    'FamilyModel',
    'GroupChildMemberModel',
    'GroupFamilyMemberModel',
    'GroupModel',
    'ScheduleSlotChildModel',
    'ScheduleSlotModel',
    'ScheduleSlotVehicleModel',
    'UserModel',
    'VehicleModel',
]
