import attrs
import uuid_utils as uuid

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import DomainError


@attrs.define
class Vehicle:
    """Stored rows are trusted as-is; capacity bounds apply to new vehicles only."""

    id: str
    name: str
    capacity: int
    family_id: str

    @classmethod
    def create(cls, *, name: str, capacity: int, family_id: str) -> 'Vehicle':
        if not settings.VEHICLE_MIN_CAPACITY <= capacity <= settings.VEHICLE_MAX_CAPACITY:
            raise DomainError(
                f'Vehicle capacity must be between {settings.VEHICLE_MIN_CAPACITY} '
                f'and {settings.VEHICLE_MAX_CAPACITY}'
            )
        return cls(id=str(uuid.uuid7()), name=name, capacity=capacity, family_id=family_id)
