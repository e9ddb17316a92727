import pytest

from src.platform.exception.exceptions import CapacityExceededError, DomainError
from src.service.carpool.domain.entity.child_assignment_entity import ChildAssignment
from src.service.carpool.domain.entity.schedule_slot_entity import ScheduleSlot
from src.service.carpool.domain.entity.vehicle_assignment_entity import validate_seat_override
from src.service.carpool.domain.entity.vehicle_entity import Vehicle
from test.service.carpool.unit.helpers import make_slot, make_vehicle, make_vehicle_assignment


@pytest.mark.unit
class TestEffectiveCapacity:
    def test_nominal_capacity_without_override(self):
        assert make_vehicle_assignment(capacity=4).effective_capacity == 4

    @pytest.mark.parametrize('seat_override', [0, 2, 6])
    def test_override_wins_in_both_directions(self, seat_override):
        va = make_vehicle_assignment(capacity=4, seat_override=seat_override)

        assert va.effective_capacity == seat_override

    def test_ensure_seat_available_boundary(self):
        va = make_vehicle_assignment(capacity=3)

        va.ensure_seat_available(current_count=2)
        with pytest.raises(CapacityExceededError) as exc_info:
            va.ensure_seat_available(current_count=3)

        assert str(exc_info.value) == 'Vehicle Family Van is at full capacity (3/3)'

    def test_override_may_not_drop_below_occupancy(self):
        va = make_vehicle_assignment(capacity=6)

        va.ensure_override_fits(seat_override=3, current_count=3)
        va.ensure_override_fits(seat_override=None, current_count=6)
        with pytest.raises(CapacityExceededError, match=r'\(4/2\)'):
            va.ensure_override_fits(seat_override=2, current_count=4)


@pytest.mark.unit
class TestValidation:
    @pytest.mark.parametrize('value', [None, 0, 10])
    def test_valid_overrides(self, value):
        assert validate_seat_override(value) == value

    @pytest.mark.parametrize('value', [-1, 11])
    def test_invalid_overrides(self, value):
        with pytest.raises(DomainError):
            validate_seat_override(value)

    @pytest.mark.parametrize('capacity', [0, 11])
    def test_new_vehicle_capacity_bounds(self, capacity):
        with pytest.raises(DomainError, match='between 1 and 10'):
            Vehicle.create(name='Bus', capacity=capacity, family_id='family-1')

    def test_new_vehicle_within_bounds(self):
        vehicle = Vehicle.create(name='Van', capacity=10, family_id='family-1')

        assert vehicle.capacity == 10
        assert vehicle.id[14] == '7'

    def test_existing_vehicle_is_not_revalidated(self):
        assert make_vehicle(capacity=30).capacity == 30


@pytest.mark.unit
class TestScheduleSlotSummary:
    def test_totals_across_vehicles(self):
        slot = make_slot()
        van = make_vehicle_assignment(capacity=4, seat_override=6, va_id='va-van')
        car = make_vehicle_assignment(capacity=3, va_id='va-car', name='City Car')
        van.child_assignments = [
            ChildAssignment(schedule_slot_id=slot.id, child_id=f'c{i}', vehicle_assignment_id=van.id)
            for i in range(2)
        ]
        slot.vehicle_assignments = [van, car]

        assert slot.total_capacity == 9
        assert slot.occupied_seats == 2
        assert slot.available_seats == 7

    def test_create_generates_uuid7_id(self):
        slot = ScheduleSlot.create(group_id='group-1', slot_datetime=make_slot().datetime)

        assert len(slot.id) == 36
        assert slot.id[14] == '7'
        assert slot.vehicle_assignments == []
