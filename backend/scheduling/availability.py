"""Weekly availability parsing, formatting and 12/24-hour time conversion."""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Mapping, NamedTuple, Sequence

from pydantic import BaseModel, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)

DAY_NAMES = ('Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday')
DAY_INDEX = {name: index for index, name in enumerate(DAY_NAMES)}

AVAILABILITY_PATTERN = re.compile(r'^(\w+):\s*(\d{2}:\d{2})\s*-\s*(\d{2}:\d{2})$')
CLOCK_PATTERN = re.compile(r'^(\d{2}):(\d{2})$')
END_OF_DAY = '24:00'


@dataclass(frozen=True)
class ShiftWindow:
    start_time: str
    end_time: str


DaySchedule = dict[int, list[ShiftWindow]]


class TimeSelection(NamedTuple):
    hour: int
    minute: str
    period: str


@dataclass
class ShiftSelection:
    """One row of the day/time builder in the doctor profile editor."""

    start_hour: int | str | None = None
    start_minute: str = '00'
    start_period: str = 'AM'
    end_hour: int | str | None = None
    end_minute: str = '00'
    end_period: str = 'PM'


class AvailabilityWindow(BaseModel):
    """Persisted availability record for one shift on one weekday."""

    day: str
    start: str
    end: str

    @field_validator('day')
    @classmethod
    def validate_day(cls, value: str) -> str:
        normalized = value.strip().capitalize()
        if normalized not in DAY_INDEX:
            raise ValueError('Day must be an English weekday name.')
        return normalized

    @field_validator('start')
    @classmethod
    def validate_start(cls, value: str) -> str:
        normalized = value.strip()
        if not is_clock(normalized):
            raise ValueError('Times must use 24-hour HH:MM format.')
        return normalized

    @field_validator('end')
    @classmethod
    def validate_end(cls, value: str) -> str:
        normalized = value.strip()
        if normalized != END_OF_DAY and not is_clock(normalized):
            raise ValueError('Times must use 24-hour HH:MM format.')
        return normalized

    @model_validator(mode='after')
    def validate_order(self) -> 'AvailabilityWindow':
        if self.start >= self.end:
            raise ValueError('Shift start must be before shift end.')
        return self

    def to_entry(self) -> str:
        return format_availability_entry(self.day, self.start, self.end)


def weekday_index(day_name: str) -> int | None:
    return DAY_INDEX.get(day_name)


def is_clock(value: str) -> bool:
    match = CLOCK_PATTERN.match(value)
    return bool(match) and int(match.group(1)) <= 23 and int(match.group(2)) <= 59


def format_availability_entry(day: str, start_time: str, end_time: str) -> str:
    return f'{day}: {start_time} - {end_time}'


def parse_availability(entries: Iterable[str]) -> DaySchedule:
    """Build a weekday-indexed schedule from ``"Day: HH:MM - HH:MM"`` strings.

    Entries that do not match the pattern, or name an unknown day, contribute
    nothing. Clock values are kept as written, so ``24:00`` closes a shift at
    midnight. An empty result means no availability was declared at all, which
    the slot generator treats as "use the default schedule".
    """
    schedule: DaySchedule = {}

    for entry in entries:
        if not isinstance(entry, str):
            continue

        match = AVAILABILITY_PATTERN.match(entry.strip())
        if not match:
            continue

        day, start_time, end_time = match.groups()
        index = weekday_index(day)
        if index is None:
            continue

        schedule.setdefault(index, []).append(ShiftWindow(start_time, end_time))

    return schedule


def schedule_from_windows(windows: Iterable[AvailabilityWindow]) -> DaySchedule:
    schedule: DaySchedule = {}
    for window in windows:
        schedule.setdefault(DAY_INDEX[window.day], []).append(ShiftWindow(window.start, window.end))
    return schedule


def normalize_availability(raw_entries: Iterable[object] | None) -> list[AvailabilityWindow]:
    """Convert stored or submitted availability into typed records.

    Accepts legacy ``"Day: HH:MM - HH:MM"`` strings, mappings with
    ``day``/``start``/``end`` keys, and ``AvailabilityWindow`` instances.
    Entries that cannot be read or fail validation are dropped with a
    warning, so stored data never breaks a read.
    """
    windows: list[AvailabilityWindow] = []

    for entry in raw_entries or []:
        if isinstance(entry, AvailabilityWindow):
            windows.append(entry)
        elif isinstance(entry, Mapping):
            try:
                window = AvailabilityWindow.model_validate(entry)
            except ValidationError:
                logger.warning('Dropping invalid availability record %r', dict(entry))
                continue
            windows.append(window)
        elif isinstance(entry, str):
            parsed = parse_availability([entry])
            if not parsed:
                logger.warning('Dropping unreadable availability entry %r', entry)
                continue
            index, shifts = next(iter(parsed.items()))
            try:
                window = AvailabilityWindow(day=DAY_NAMES[index], start=shifts[0].start_time, end=shifts[0].end_time)
            except ValidationError:
                logger.warning('Dropping invalid availability entry %r', entry)
                continue
            windows.append(window)
        else:
            logger.warning('Dropping availability entry of unsupported type %s', type(entry).__name__)

    return windows


def encode_time(hour: int | str | None, minute: int | str = '00', period: str = 'AM') -> str:
    """Convert a 12-hour selection into a zero-padded ``HH:MM`` string.

    Returns an empty string when no hour was chosen.
    """
    if hour is None or str(hour).strip() == '':
        return ''

    hour_24 = int(hour)
    if period == 'PM' and hour_24 != 12:
        hour_24 += 12
    if period == 'AM' and hour_24 == 12:
        hour_24 = 0

    return f'{hour_24:02d}:{str(minute).zfill(2)}'


def decode_time(value: str | None) -> TimeSelection | None:
    if not value:
        return None

    match = CLOCK_PATTERN.match(value.strip())
    if not match:
        return None

    hour = int(match.group(1))
    if hour > 23:
        return None

    period = 'PM' if hour >= 12 else 'AM'
    display_hour = 12 if hour in (0, 12) else hour % 12

    return TimeSelection(display_hour, match.group(2).zfill(2), period)


def build_availability(day_slots: Mapping[str, Sequence[ShiftSelection]]) -> list[str]:
    """Assemble builder selections into persisted availability strings.

    Days are emitted in the order given; a row missing either hour is left out.
    """
    availability: list[str] = []

    for day, selections in day_slots.items():
        for selection in selections:
            start_time = encode_time(selection.start_hour, selection.start_minute, selection.start_period)
            end_time = encode_time(selection.end_hour, selection.end_minute, selection.end_period)
            if start_time and end_time:
                availability.append(format_availability_entry(day, start_time, end_time))

    return availability


def split_availability(entries: Iterable[str]) -> dict[str, list[ShiftSelection]]:
    """Turn availability strings back into builder rows keyed by day name."""
    day_slots: dict[str, list[ShiftSelection]] = {}

    for entry in entries:
        match = AVAILABILITY_PATTERN.match(entry.strip()) if isinstance(entry, str) else None
        if not match:
            continue

        day, start_time, end_time = match.groups()
        start = decode_time(start_time)
        end = decode_time(end_time)
        if start is None or end is None:
            continue

        day_slots.setdefault(day, []).append(
            ShiftSelection(
                start_hour=start.hour,
                start_minute=start.minute,
                start_period=start.period,
                end_hour=end.hour,
                end_minute=end.minute,
                end_period=end.period,
            )
        )

    return day_slots
