"""Bookable slot generation for a doctor's rolling one-week window."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Mapping, Sequence

from backend.scheduling.availability import DaySchedule, ShiftWindow

SLOT_INTERVAL = timedelta(minutes=30)
BOOKING_WINDOW_DAYS = 7
BOOKING_LEAD_TIME = timedelta(hours=1)
DEFAULT_SHIFT = ShiftWindow('10:00', '21:00')
WEEKDAY_LABELS = ('SUN', 'MON', 'TUE', 'WED', 'THU', 'FRI', 'SAT')

BookedSlotIndex = Mapping[str, Sequence[str]]


@dataclass(frozen=True)
class SlotCandidate:
    instant: datetime
    display_time: str

    @property
    def date_key(self) -> str:
        return format_date_key(self.instant.date())


def format_date_key(day: date) -> str:
    return f'{day.day}_{day.month}_{day.year}'


def parse_date_key(value: str) -> date:
    """Inverse of ``format_date_key``; raises ``ValueError`` for malformed keys."""
    parts = value.strip().split('_')
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        raise ValueError(f'Invalid date key: {value!r}')

    day, month, year = (int(part) for part in parts)
    return date(year, month, day)


def format_display_time(instant: datetime) -> str:
    return instant.strftime('%H:%M')


def schedule_weekday(day: date) -> int:
    """Weekday index with Sunday as 0, matching ``DAY_NAMES``."""
    return (day.weekday() + 1) % 7


def earliest_bookable_start(reference: datetime) -> datetime:
    """First slot boundary at least one hour after ``reference``."""
    threshold = reference + BOOKING_LEAD_TIME
    boundary = threshold.replace(minute=0, second=0, microsecond=0)

    while boundary < threshold:
        boundary += SLOT_INTERVAL

    return boundary


def _clock_offset(value: str) -> timedelta:
    """Offset of an ``HH:MM`` clock from midnight; ``24:00`` is the next midnight."""
    hour, minute = value.split(':')
    return timedelta(hours=int(hour), minutes=int(minute))


def shifts_for_day(schedule: DaySchedule, day: date, uses_default_schedule: bool) -> list[ShiftWindow]:
    if uses_default_schedule:
        return [DEFAULT_SHIFT]
    return sorted(schedule.get(schedule_weekday(day), []), key=lambda shift: shift.start_time)


def generate_slots(
    schedule: DaySchedule,
    slots_booked: BookedSlotIndex | None = None,
    reference: datetime | None = None,
    uses_default_schedule: bool | None = None,
) -> list[list[SlotCandidate]]:
    """Return seven per-day lists of bookable slots, index 0 being today.

    When ``uses_default_schedule`` is not given, an empty schedule means the
    doctor never declared availability and every day gets ``DEFAULT_SHIFT``.
    A weekday missing from a non-empty schedule yields an empty list.
    """
    reference = reference or datetime.now()
    slots_booked = slots_booked or {}
    if uses_default_schedule is None:
        uses_default_schedule = not schedule

    today = reference.date()
    today_floor = earliest_bookable_start(reference)
    days: list[list[SlotCandidate]] = []

    for offset in range(BOOKING_WINDOW_DAYS):
        current_day = today + timedelta(days=offset)
        booked_times = set(slots_booked.get(format_date_key(current_day), ()))
        day_slots: list[SlotCandidate] = []

        for shift in shifts_for_day(schedule, current_day, uses_default_schedule):
            midnight = datetime.combine(current_day, time.min, tzinfo=reference.tzinfo)
            slot_start = midnight + _clock_offset(shift.start_time)
            shift_end = midnight + _clock_offset(shift.end_time)

            if current_day == today and today_floor > slot_start:
                slot_start = today_floor

            while slot_start < shift_end:
                display_time = format_display_time(slot_start)
                if display_time not in booked_times:
                    day_slots.append(SlotCandidate(instant=slot_start, display_time=display_time))
                slot_start += SLOT_INTERVAL

        days.append(day_slots)

    return days
