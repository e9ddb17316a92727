from datetime import datetime, timedelta, timezone

import pytest

from src.platform.exception.exceptions import DomainError, PastScheduleSlotError
from src.service.carpool.domain.past_date_validator import (
    assert_not_past,
    format_in_timezone,
    is_date_in_past_with_timezone,
    parse_schedule_slot_datetime,
    resolve_timezone,
    week_boundaries,
)


NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.mark.unit
class TestParseScheduleSlotDatetime:
    @pytest.mark.parametrize(
        'value',
        ['2026-01-15T08:00:00Z', '2026-01-15T09:00:00+01:00', '2026-01-15T08:00:00'],
    )
    def test_iso_inputs_normalize_to_utc(self, value):
        assert parse_schedule_slot_datetime(value) == datetime(
            2026, 1, 15, 8, 0, tzinfo=timezone.utc
        )

    def test_naive_datetime_is_utc(self):
        parsed = parse_schedule_slot_datetime(datetime(2026, 1, 15, 8, 0))

        assert parsed.tzinfo == timezone.utc

    @pytest.mark.parametrize('value', ['not-a-date', '2026-13-45T99:00', 42])
    def test_invalid_input(self, value):
        with pytest.raises(DomainError):
            parse_schedule_slot_datetime(value)


@pytest.mark.unit
class TestPastChecks:
    def test_future_and_past(self):
        assert is_date_in_past_with_timezone('2026-01-15T11:59:00Z', 'UTC', now=NOW) is True
        assert is_date_in_past_with_timezone('2026-01-15T12:01:00Z', 'UTC', now=NOW) is False

    def test_same_instant_is_not_past(self):
        assert is_date_in_past_with_timezone(NOW, 'Asia/Tokyo', now=NOW) is False

    def test_unknown_timezone(self):
        with pytest.raises(DomainError, match='Invalid timezone: Mars/Olympus'):
            is_date_in_past_with_timezone(NOW, 'Mars/Olympus', now=NOW)

    def test_format_in_timezone(self):
        assert format_in_timezone('2026-01-15T08:00:00Z', 'Europe/Paris') == '2026-01-15 09:00'
        assert format_in_timezone('2026-01-15T08:00:00Z', None) == '2026-01-15 08:00'

    def test_assert_not_past_message(self):
        """
        Given: a slot at 07:30 UTC and a user in Europe/Paris
        When: the slot is checked at 12:00 UTC
        Then: the message shows the Paris wall-clock time
        """
        with pytest.raises(PastScheduleSlotError) as exc_info:
            assert_not_past(
                '2026-01-15T07:30:00Z', 'Europe/Paris', action='modify trips', now=NOW
            )

        assert exc_info.value.status_code == 422
        assert exc_info.value.message == (
            'Cannot modify trips in the past (2026-01-15 08:30 in Europe/Paris)'
        )

    def test_assert_not_past_accepts_future(self):
        assert_not_past('2026-01-16T07:30:00Z', 'UTC', action='create trips', now=NOW)

    def test_resolve_timezone_order(self):
        assert resolve_timezone('Europe/Paris', 'Asia/Tokyo') == 'Europe/Paris'
        assert resolve_timezone(None, 'Asia/Tokyo') == 'Asia/Tokyo'
        assert resolve_timezone('', None) == 'UTC'

    def test_resolve_timezone_skips_invalid_names(self):
        assert resolve_timezone('Mars/Olympus_Mons', 'Asia/Tokyo') == 'Asia/Tokyo'
        assert resolve_timezone('../etc/passwd', None) == 'UTC'


@pytest.mark.unit
class TestWeekBoundaries:
    def test_week_in_utc(self):
        # 2026-01-15 is a Thursday
        start, end = week_boundaries(NOW, 'UTC')

        assert start == datetime(2026, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert end == datetime(2026, 1, 18, 23, 59, 59, 999999, tzinfo=timezone.utc)

    def test_week_starts_at_local_monday_midnight(self):
        """
        Given: Sunday 23:30 UTC, already Monday 08:30 in Tokyo
        When: the week is computed in Asia/Tokyo
        Then: it starts on that Monday, 00:00 Tokyo time
        """
        start, end = week_boundaries(datetime(2026, 1, 18, 23, 30, tzinfo=timezone.utc), 'Asia/Tokyo')

        assert start == datetime(2026, 1, 18, 15, 0, tzinfo=timezone.utc)
        assert end - start == timedelta(days=7) - timedelta(microseconds=1)
