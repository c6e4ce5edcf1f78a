"""
Shift arithmetic: lateness and the allowed entry window.

A shift whose start is later than its end (22:00 - 06:00) crosses midnight.
Both helpers here account for that, so a worker clocking in at 01:00 is
measured against yesterday's 22:00 start.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import NamedTuple


@dataclass(frozen=True)
class ShiftConfiguration:
    start: time
    end: time
    tolerance_minutes: int = 0
    early_entry_minutes: int = 60

    def __post_init__(self):
        if self.tolerance_minutes < 0:
            raise ValueError("Late tolerance minutes cannot be negative")
        if self.early_entry_minutes < 0:
            raise ValueError("Early entry minutes cannot be negative")

    @property
    def is_night_shift(self) -> bool:
        return self.start > self.end

    @property
    def tolerance(self) -> timedelta:
        return timedelta(minutes=self.tolerance_minutes)

    @classmethod
    def from_settings(cls, settings):
        return cls(
            start=settings.work_start,
            end=settings.work_end,
            tolerance_minutes=settings.late_tolerance_minutes,
            early_entry_minutes=settings.early_entry_minutes,
        )


class Lateness(NamedTuple):
    is_late: bool
    duration: timedelta


def shift_start_for(check_in_time: datetime, attendance_date: date, shift: ShiftConfiguration) -> datetime:
    if shift.is_night_shift and check_in_time.time() < shift.end:
        # Morning tail of a shift that started the previous day
        return datetime.combine(attendance_date - timedelta(days=1), shift.start)
    return datetime.combine(attendance_date, shift.start)


def evaluate(check_in_time: datetime, attendance_date: date, shift: ShiftConfiguration) -> Lateness:
    """Return whether ``check_in_time`` is late and by how much.

    Lateness is measured from the shift start, not from the end of the
    tolerance: with an 08:00 start and 15 minutes of tolerance, 08:15:01 is
    late by 15m01s.
    """
    shift_start = shift_start_for(check_in_time, attendance_date, shift)
    threshold = shift_start + shift.tolerance
    if check_in_time > threshold:
        return Lateness(True, max(timedelta(0), check_in_time - shift_start))
    return Lateness(False, timedelta(0))


def _minus_minutes(t: time, minutes: int) -> time:
    anchor = datetime.combine(date(2000, 1, 2), t)
    return (anchor - timedelta(minutes=minutes)).time()


def entry_window(shift: ShiftConfiguration):
    return _minus_minutes(shift.start, shift.early_entry_minutes), shift.end


def calendar_date_for(moment: datetime, shift: ShiftConfiguration) -> date:
    """Day a check-in counts for.

    An early arrival before a start just after midnight (23:45 for a 00:30
    shift) belongs to the next day's shift.
    """
    window_start = _minus_minutes(shift.start, shift.early_entry_minutes)
    if window_start > shift.start and moment.time() >= window_start:
        return moment.date() + timedelta(days=1)
    return moment.date()


def within_entry_window(moment: datetime, shift: ShiftConfiguration) -> bool:
    window_start, window_end = entry_window(shift)
    now = moment.time()
    if window_start > window_end:
        return now >= window_start or now <= window_end
    return window_start <= now <= window_end


def format_duration(duration):
    if duration is None:
        return None
    if isinstance(duration, (int, float)):
        duration = timedelta(seconds=duration)
    total = int(duration.total_seconds())
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours == 0:
        return f"{seconds}s" if minutes == 0 else f"{minutes}m {seconds}s"
    return f"{hours}h {minutes}m {seconds}s"
