from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
import re

from schoolday.core.exceptions import InvalidWindowError
from schoolday.models.enums import DayOfWeek

# Single-digit hours ("9:05") are accepted on input and padded on output.
TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def normalize_time(value: object, *, field: str = "time") -> str:
    """Return ``value`` as a zero-padded ``HH:MM`` wall-clock string."""
    if isinstance(value, datetime):
        value = value.time()
    if isinstance(value, time):
        return f"{value.hour:02d}:{value.minute:02d}"
    if not isinstance(value, str):
        raise InvalidWindowError(f"{field} must be a HH:MM string", field=field, value=value)
    match = TIME_PATTERN.match(value.strip())
    if match is None:
        raise InvalidWindowError(f"{field} must be in HH:MM 24-hour format", field=field, value=value)
    hours, minutes = match.groups()
    return f"{int(hours):02d}:{minutes}"


def parse_time_to_minutes(value: str) -> int:
    hours, minutes = normalize_time(value).split(":")
    return int(hours) * 60 + int(minutes)


@dataclass(frozen=True)
class TimeWindow:
    start_time: str
    end_time: str
    day_of_week: DayOfWeek | None = None
    full_date: date | None = None

    def __post_init__(self) -> None:
        start = normalize_time(self.start_time, field="startTime")
        end = normalize_time(self.end_time, field="endTime")
        object.__setattr__(self, "start_time", start)
        object.__setattr__(self, "end_time", end)
        # A calendar date always decides the weekday.
        if self.full_date is not None:
            object.__setattr__(self, "day_of_week", DayOfWeek.from_date(self.full_date))
        if self.end_minutes <= self.start_minutes:
            raise InvalidWindowError(
                "End time must be after start time",
                field="endTime",
                value=f"{start} - {end}",
            )

    @classmethod
    def from_values(
        cls,
        start: object,
        end: object,
        *,
        day_of_week: DayOfWeek | str | None = None,
        full_date: date | None = None,
    ) -> "TimeWindow":
        day: DayOfWeek | None
        if isinstance(day_of_week, str) and not isinstance(day_of_week, DayOfWeek):
            try:
                day = DayOfWeek.parse(day_of_week)
            except ValueError as exc:
                raise InvalidWindowError(str(exc), field="dayOfWeek", value=day_of_week) from exc
        else:
            day = day_of_week
        return cls(
            start_time=normalize_time(start, field="startTime"),
            end_time=normalize_time(end, field="endTime"),
            day_of_week=day,
            full_date=full_date,
        )

    @property
    def start_minutes(self) -> int:
        hours, minutes = self.start_time.split(":")
        return int(hours) * 60 + int(minutes)

    @property
    def end_minutes(self) -> int:
        hours, minutes = self.end_time.split(":")
        return int(hours) * 60 + int(minutes)

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    def overlaps(self, other: "TimeWindow") -> bool:
        # Half-open: 09:00-10:00 and 10:00-11:00 do not overlap.
        return self.start_minutes < other.end_minutes and other.start_minutes < self.end_minutes

    def same_day(self, other: "TimeWindow") -> bool:
        if self.full_date is not None or other.full_date is not None:
            return self.full_date == other.full_date
        return self.day_of_week == other.day_of_week

    def same_period(self, other: "TimeWindow") -> bool:
        return (
            self.same_day(other)
            and self.start_time == other.start_time
            and self.end_time == other.end_time
        )

    def label(self) -> str:
        when = self.full_date.isoformat() if self.full_date else (self.day_of_week.value if self.day_of_week else "")
        return f"{when} {self.start_time}-{self.end_time}".strip()


def window_of(slot: object) -> TimeWindow:
    """Build the window of a persisted slot row."""
    return TimeWindow(
        start_time=slot.start_time,
        end_time=slot.end_time,
        day_of_week=slot.day_of_week,
        full_date=slot.full_date,
    )
