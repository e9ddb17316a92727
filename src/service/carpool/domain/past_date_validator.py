"""
Timezone-aware past-date checks and week ranges for schedule slots

Slot datetimes are stored in UTC; comparisons and messages are done in the
timezone of the user (falling back to the group, then UTC) so that error
messages show the local time the user scheduled.
"""

from datetime import datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import DomainError, PastScheduleSlotError
from src.platform.logging.loguru_io import Logger


DEFAULT_TIMEZONE = settings.DEFAULT_TIMEZONE
LOCAL_TIME_FORMAT = '%Y-%m-%d %H:%M'


def get_zone(tz_name: Optional[str]) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name or DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise DomainError(f'Invalid timezone: {tz_name}') from e


def resolve_timezone(*candidates: Optional[str]) -> str:
    """First usable timezone among the candidates, UTC otherwise.

    A stored name that zoneinfo rejects is skipped, so a bad user timezone
    falls back to the group one instead of failing every write.
    """
    for candidate in candidates:
        if not candidate:
            continue
        try:
            ZoneInfo(candidate)
        except (ZoneInfoNotFoundError, ValueError):
            Logger.base.warning(f'⚠️ [TZ] Ignoring invalid timezone {candidate!r}')
            continue
        return candidate
    return DEFAULT_TIMEZONE


def parse_schedule_slot_datetime(value: datetime | str) -> datetime:
    """Parse ISO-8601 input into an aware UTC datetime. Naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError as e:
            raise DomainError(f'Invalid datetime format: {value}') from e
    else:
        raise DomainError(f'Invalid datetime value: {value!r}')

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def is_date_in_past_with_timezone(
    date: datetime | str, tz_name: Optional[str], now: Optional[datetime] = None
) -> bool:
    zone = get_zone(tz_name)
    moment = parse_schedule_slot_datetime(date).astimezone(zone)
    current = (now or datetime.now(timezone.utc)).astimezone(zone)
    return moment < current


def format_in_timezone(date: datetime | str, tz_name: Optional[str]) -> str:
    zone = get_zone(tz_name)
    return parse_schedule_slot_datetime(date).astimezone(zone).strftime(LOCAL_TIME_FORMAT)


def week_boundaries(moment: datetime, tz_name: Optional[str]) -> tuple[datetime, datetime]:
    """ISO week around `moment` in `tz_name`: Monday 00:00 to Sunday 23:59:59.999999, as UTC."""
    zone = get_zone(tz_name)
    local_day = moment.astimezone(zone).date()
    monday = local_day - timedelta(days=local_day.weekday())
    week_start = datetime.combine(monday, time.min, tzinfo=zone)
    week_end = datetime.combine(monday + timedelta(days=6), time.max, tzinfo=zone)
    return week_start.astimezone(timezone.utc), week_end.astimezone(timezone.utc)


def assert_not_past(
    date: datetime | str,
    tz_name: Optional[str],
    *,
    action: str,
    now: Optional[datetime] = None,
) -> None:
    """
    Raise PastScheduleSlotError when `date` has already elapsed.

    Message: 'Cannot {action} in the past (2024-01-15 08:00 in Europe/Paris)'
    """
    tz_label = tz_name or DEFAULT_TIMEZONE
    if is_date_in_past_with_timezone(date, tz_label, now=now):
        raise PastScheduleSlotError(
            f'Cannot {action} in the past ({format_in_timezone(date, tz_label)} in {tz_label})'
        )
