"""
Schedule Resolver - Normalizes providers' recurring weekly schedules.

Stored schedules map weekday names to 12-hour clock times ("1:00 PM").
This module turns them into 24-hour "HH:MM" times for one weekday,
dropping individual entries that fail to parse so a single bad entry
never invalidates the whole day.
"""

import json
import re
from datetime import date
from typing import Any, Dict, Optional

from loguru import logger

from clinic.config import WEEKDAY_NAMES
from clinic.models.provider import ProviderKind, RawSchedule
from clinic.models.results import ErrorCode, ScheduleResolution

# "1:00 PM", "01:30 am", " 12:00PM "
SCHEDULE_TIME_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])\s*$", re.ASCII)

# "9:05", "09:05", "23:59"; "9:5" is rejected
REQUEST_TIME_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$", re.ASCII)


def parse_schedule_time(value: Any) -> Optional[str]:
    """
    Convert a 12-hour schedule entry to 24-hour "HH:MM".

    Returns None when the entry is not a valid 12-hour time.
    """
    if not isinstance(value, str):
        return None
    match = SCHEDULE_TIME_PATTERN.match(value)
    if not match:
        return None

    hour, minute = int(match.group(1)), int(match.group(2))
    if not 1 <= hour <= 12 or minute > 59:
        return None

    meridiem = match.group(3).upper()
    if meridiem == "AM":
        hour = 0 if hour == 12 else hour
    else:
        hour = 12 if hour == 12 else hour + 12
    return f"{hour:02d}:{minute:02d}"


def normalize_request_time(value: str) -> Optional[str]:
    """
    Normalize a loosely formatted 24-hour time ("9:05") to "HH:MM".

    Returns None when the value is not a valid H:MM or HH:MM time.
    """
    match = REQUEST_TIME_PATTERN.match(value or "")
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return f"{hour:02d}:{minute:02d}"


def weekday_name(day: date) -> str:
    """Full English weekday name ("Wednesday") for a date."""
    return WEEKDAY_NAMES[day.weekday()]


class ScheduleResolver:
    """
    Resolves one weekday of a provider's recurring schedule.

    The kind only tailors the messages ("doctor" vs "medical test");
    parsing is identical for every provider.
    """

    def __init__(self, kind: ProviderKind = ProviderKind.DOCTOR):
        self.kind = kind

    @staticmethod
    def load(raw_schedule: RawSchedule) -> Optional[Dict[str, Any]]:
        """
        Deserialize a stored schedule.

        Returns None if the schedule is absent, empty, not valid JSON,
        or not a weekday mapping.
        """
        schedule = raw_schedule
        if isinstance(raw_schedule, (str, bytes)):
            try:
                schedule = json.loads(raw_schedule)
            except ValueError:
                logger.warning("Stored schedule is not valid JSON")
                return None

        if not isinstance(schedule, dict) or not schedule:
            return None
        return schedule

    def resolve(self, raw_schedule: RawSchedule, weekday: str) -> ScheduleResolution:
        """
        Resolve the 24-hour times offered on a weekday.

        Args:
            raw_schedule: Stored schedule, as JSON text or a mapping
            weekday: Full English weekday name, e.g. "Wednesday"

        Returns:
            ScheduleResolution with the normalized times in schedule order,
            or an error code describing why there are none
        """
        label = self.kind.label
        schedule = self.load(raw_schedule)
        if schedule is None:
            return ScheduleResolution(
                success=False,
                weekday=weekday,
                message=f"{label.capitalize()} schedule not found.",
                error_code=ErrorCode.SCHEDULE_NOT_FOUND,
            )

        entries = schedule.get(weekday)
        if not isinstance(entries, list) or not entries:
            return ScheduleResolution(
                success=False,
                weekday=weekday,
                message=f"No available schedule for {weekday}.",
                error_code=ErrorCode.NO_SCHEDULE_FOR_WEEKDAY,
            )

        times = []
        for entry in entries:
            parsed = parse_schedule_time(entry)
            if parsed is None:
                logger.warning(f"Invalid time format in schedule: {entry!r} ({weekday})")
                continue
            times.append(parsed)

        if not times:
            return ScheduleResolution(
                success=False,
                weekday=weekday,
                message=f"No valid times found in the {label} schedule.",
                error_code=ErrorCode.NO_VALID_TIMES,
            )

        return ScheduleResolution(
            success=True,
            weekday=weekday,
            times=times,
            message=f"{len(times)} scheduled times on {weekday}.",
        )

    def resolve_for_date(self, raw_schedule: RawSchedule, day: date) -> ScheduleResolution:
        """Resolve the schedule for the weekday a date falls on."""
        return self.resolve(raw_schedule, weekday_name(day))
