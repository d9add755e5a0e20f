"""
Delivery Calendar — builds the per-day schedule of a subscription sub-order.

Rules:
  - Slot budget: 30 × multiplier for mon-sat, 34 × multiplier for mon-fri
  - 26 × multiplier of those slots are delivery ("active") days
  - mon-sat skips Sunday, mon-fri skips Saturday and Sunday
  - Skipped days are kept as Holiday placeholders and use up slots
  - Dates are rendered at UTC+05:30 whatever the server timezone is
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from config import settings
from schemas import DeliveryStatus, WeekdayPattern


ACTIVE_DAYS_PER_UNIT = 26

SLOTS_PER_UNIT = {
    WeekdayPattern.MON_SAT: 30,
    WeekdayPattern.MON_FRI: 34,
}

# datetime.weekday(): Monday = 0 … Sunday = 6
HOLIDAY_WEEKDAYS = {
    WeekdayPattern.MON_FRI: frozenset({5, 6}),
    WeekdayPattern.MON_SAT: frozenset({6}),
}

SCHEDULE_TZ = timezone(timedelta(minutes=settings.schedule_utc_offset_minutes))


@dataclass
class CalendarEntry:
    date: str
    status: DeliveryStatus


def is_holiday(day: date, pattern: WeekdayPattern | str) -> bool:
    """Check whether a calendar day is a non-delivery day for the pattern."""
    return day.weekday() in HOLIDAY_WEEKDAYS[WeekdayPattern(pattern)]


def to_schedule_date(moment: date | datetime) -> date:
    """Project a date or instant onto the schedule timezone's calendar.

    Plain dates and naive datetimes are read as UTC.
    """
    if not isinstance(moment, datetime):
        moment = datetime.combine(moment, time(0, 0), tzinfo=timezone.utc)
    elif moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(SCHEDULE_TZ).date()


def format_schedule_date(moment: date | datetime) -> str:
    return to_schedule_date(moment).strftime("%Y-%m-%d")


def parse_schedule_date(value: str) -> date:
    return datetime.strptime(value, "%Y-%m-%d").date()


def generate_delivery_dates(
    start_date: date | datetime | str,
    repeat_multiplier: int,
    pattern: WeekdayPattern | str,
) -> tuple[list[CalendarEntry], int]:
    """
    Walk the calendar from start_date and emit one entry per day.

    Args:
        start_date: First calendar day (date, datetime or "YYYY-MM-DD")
        repeat_multiplier: Number of service units bought (selectedType)
        pattern: "mon-fri" or "mon-sat"

    Returns:
        (entries, active_day_count)
    """
    pattern = WeekdayPattern(pattern)
    if repeat_multiplier <= 0:
        return [], 0

    if isinstance(start_date, str):
        start_date = parse_schedule_date(start_date)

    total_slots = SLOTS_PER_UNIT[pattern] * repeat_multiplier
    current = to_schedule_date(start_date)

    entries: list[CalendarEntry] = []
    while len(entries) < total_slots:
        status = DeliveryStatus.HOLIDAY if is_holiday(current, pattern) else DeliveryStatus.PENDING
        entries.append(CalendarEntry(date=current.strftime("%Y-%m-%d"), status=status))
        current += timedelta(days=1)

    return entries, ACTIVE_DAYS_PER_UNIT * repeat_multiplier


def next_delivery_day(after: date, pattern: WeekdayPattern | str) -> date:
    """First non-holiday day strictly after `after`.

    Every supported pattern leaves at least one weekday open, so the search
    ends within a week.
    """
    candidate = after
    for _ in range(7):
        candidate += timedelta(days=1)
        if not is_holiday(candidate, pattern):
            return candidate
    raise ValueError(f"Pattern {pattern!r} has no delivery weekday")
