"""Prayer-period engine: daily prayer records and the time arithmetic around them.

All instants are naive datetimes in the caller's local civil time. Records are
expected to hold well-formed ``HH:MM`` strings whose six period-defining times
increase through the day; nothing here validates that, malformed upstream data
simply yields meaningless results.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple, Union

LOGGER = logging.getLogger(__name__)

PRAYER_ORDER = ["fajr", "sunrise", "dhuhr", "asr", "maghrib", "isha"]

TIME_FIELDS = {
    "fajr": "fajr_first_time",
    "sunrise": "sunrise_time",
    "dhuhr": "dhuhr_time",
    "asr": "asr_time",
    "maghrib": "maghrib_time",
    "isha": "isha_time",
}

ONE_DAY = timedelta(days=1)

ISO_DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T(\d{2}:\d{2})")


@dataclass(frozen=True)
class PrayerTimeRecord:
    """One calendar day's prayer schedule for one city."""

    id: int
    day: int
    month: int
    fajr_first_time: str
    fajr_second_time: str
    sunrise_time: str
    dhuhr_time: str
    asr_time: str
    maghrib_time: str
    isha_time: str
    section_id: Optional[int] = None
    name: str = ""

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "PrayerTimeRecord":
        """Build a record from one element of the backend's ``prayer_times`` list."""
        section_id = payload.get("section_id")
        return cls(
            id=int(payload["id"]),
            day=int(payload["day"]),
            month=int(payload["month"]),
            fajr_first_time=normalize_time(str(payload["fajr_first_time"])),
            fajr_second_time=normalize_time(str(payload.get("fajr_second_time") or payload["fajr_first_time"])),
            sunrise_time=normalize_time(str(payload["sunrise_time"])),
            dhuhr_time=normalize_time(str(payload["dhuhr_time"])),
            asr_time=normalize_time(str(payload["asr_time"])),
            maghrib_time=normalize_time(str(payload["maghrib_time"])),
            isha_time=normalize_time(str(payload["isha_time"])),
            section_id=int(section_id) if section_id not in (None, "") else None,
            name=str(payload.get("name") or ""),
        )

    def period_times(self) -> List[Tuple[str, str]]:
        """Return the six period-defining ``(name, "HH:MM")`` pairs in prayer order."""
        return [(name, getattr(self, TIME_FIELDS[name])) for name in PRAYER_ORDER]


@dataclass(frozen=True)
class PrayerInfo:
    name: str
    time: datetime


@dataclass(frozen=True)
class TimeRemaining:
    hours: int = 0
    minutes: int = 0
    seconds: int = 0

    @classmethod
    def from_milliseconds(cls, milliseconds: float) -> "TimeRemaining":
        total_seconds = max(0, int(milliseconds // 1000))
        hours, remainder = divmod(total_seconds, 3600)
        minutes, seconds = divmod(remainder, 60)
        return cls(hours=hours, minutes=minutes, seconds=seconds)

    @property
    def total_seconds(self) -> int:
        return self.hours * 3600 + self.minutes * 60 + self.seconds


# -- Time conversion -----------------------------------------------------------

def normalize_time(value: str) -> str:
    """Reduce an ISO datetime string to its ``HH:MM`` part; other strings pass through."""
    match = ISO_DATETIME_RE.match(value)
    if match:
        return match.group(1)
    return value


def to_instant(time_str: str, anchor: Union[date, datetime]) -> datetime:
    """Anchor an ``HH:MM`` string to the calendar day of *anchor*."""
    hour, minute = (int(part) for part in time_str.split(":")[:2])
    if isinstance(anchor, datetime):
        return anchor.replace(hour=hour, minute=minute, second=0, microsecond=0)
    return datetime(anchor.year, anchor.month, anchor.day, hour, minute)


def format_hhmm(instant: datetime) -> str:
    return instant.strftime("%H:%M")


def is_leap_year(year: int) -> bool:
    return (year % 4 == 0 and year % 100 != 0) or year % 400 == 0


def adjust_leap_day(year: int, month: int, day: int, forward: bool = True) -> date:
    """Build a date from components, moving a Feb 29 in a non-leap year.

    Going forward it lands on Mar 1, going backward on Feb 28. Calendar
    arithmetic on ``date`` never produces such a day, so for components that
    come from ``date`` objects this is a no-op.
    """
    if month == 2 and day == 29 and not is_leap_year(year):
        return date(year, 3, 1) if forward else date(year, 2, 28)
    return date(year, month, day)


def _shift_day(now: datetime, days: int) -> datetime:
    shifted = now.date() + timedelta(days=days)
    target = adjust_leap_day(shifted.year, shifted.month, shifted.day, forward=days > 0)
    return now.replace(year=target.year, month=target.month, day=target.day)


def _anchored_prayers(record: PrayerTimeRecord, anchor: Union[date, datetime]) -> List[PrayerInfo]:
    return [PrayerInfo(name=name, time=to_instant(value, anchor)) for name, value in record.period_times()]


# -- Period classifier ---------------------------------------------------------

def classify_period(record: PrayerTimeRecord, now: datetime) -> str:
    """Return the name of the prayer period that contains *now*."""
    times = {info.name: info.time for info in _anchored_prayers(record, now)}

    if now >= times["isha"] or now < times["fajr"]:
        return "isha"
    if now >= times["maghrib"]:
        return "maghrib"
    if now >= times["asr"]:
        return "asr"
    if now >= times["dhuhr"]:
        return "dhuhr"
    if now >= times["sunrise"]:
        return "sunrise"
    return "fajr"


def default_theme_for_hour(hour: int) -> str:
    """Rough period guess used before any record is available."""
    if 4 <= hour < 6:
        return "fajr"
    if 6 <= hour < 12:
        return "sunrise"
    if 12 <= hour < 15:
        return "dhuhr"
    if 15 <= hour < 18:
        return "asr"
    if 18 <= hour < 20:
        return "maghrib"
    return "isha"


# -- Next / last resolver ------------------------------------------------------

def get_next_prayer(record: PrayerTimeRecord, now: datetime) -> PrayerInfo:
    """Return the first prayer strictly after *now*, or tomorrow's Fajr."""
    for info in _anchored_prayers(record, now):
        if info.time > now:
            return info

    tomorrow = _shift_day(now, 1)
    LOGGER.debug("No prayer left today at %s; next is Fajr on %s", now, tomorrow.date())
    return PrayerInfo(name="fajr", time=to_instant(record.fajr_first_time, tomorrow))


def get_last_prayer(record: PrayerTimeRecord, now: datetime) -> PrayerInfo:
    """Return the latest prayer at or before *now*, or yesterday's Isha."""
    prayers = sorted(_anchored_prayers(record, now), key=lambda info: info.time)

    last: Optional[PrayerInfo] = None
    for info in prayers:
        if info.time <= now:
            last = info
        else:
            break

    if last is None:
        yesterday = _shift_day(now, -1)
        final = prayers[-1]
        LOGGER.debug("No prayer passed yet at %s; last is %s on %s", now, final.name, yesterday.date())
        last = PrayerInfo(name=final.name, time=to_instant(getattr(record, TIME_FIELDS[final.name]), yesterday))
    return last


def ordered_from_next(record: PrayerTimeRecord, now: datetime) -> List[PrayerInfo]:
    """Today's six prayers rotated so the upcoming one comes first."""
    prayers = _anchored_prayers(record, now)
    next_name = get_next_prayer(record, now).name
    start = PRAYER_ORDER.index(next_name)
    return prayers[start:] + prayers[:start]


# -- Progress ------------------------------------------------------------------

def calculate_progress(now: datetime, last_time: datetime, next_time: datetime) -> float:
    """Percentage of the last-to-next interval that has elapsed, in ``[0, 100]``."""
    if next_time < last_time:
        next_time = next_time + ONE_DAY
    if now < last_time:
        last_time = last_time - ONE_DAY

    total = (next_time - last_time).total_seconds()
    if total <= 0:
        return 0.0
    elapsed = (now - last_time).total_seconds()
    return min(max(0.0, elapsed / total * 100), 100.0)


def time_remaining_until(now: datetime, next_time: datetime) -> TimeRemaining:
    remaining_ms = (next_time - now).total_seconds() * 1000
    if remaining_ms < 0:
        remaining_ms += ONE_DAY.total_seconds() * 1000
    return TimeRemaining.from_milliseconds(remaining_ms)
