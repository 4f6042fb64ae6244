"""Arabic display helpers for prayer names, clock times and countdowns."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, Union

from prayer_times import TimeRemaining

ARABIC_DIGITS = "٠١٢٣٤٥٦٧٨٩"
_DIGIT_TABLE = str.maketrans("0123456789", ARABIC_DIGITS)

PRAYER_NAMES_AR: Dict[str, str] = {
    "fajr": "الفجر",
    "sunrise": "الشروق",
    "dhuhr": "الظهر",
    "asr": "العصر",
    "maghrib": "المغرب",
    "isha": "العشاء",
}

AM_SUFFIX = "ص"
PM_SUFFIX = "م"
NOW_TEXT = "الآن"


def to_arabic_numerals(value: Union[int, str]) -> str:
    """Replace Western digits with Eastern Arabic ones, leaving other characters alone."""
    return str(value).translate(_DIGIT_TABLE)


def prayer_name_ar(name: str) -> str:
    return PRAYER_NAMES_AR.get(name, name)


def format_time_ar(instant: datetime) -> str:
    """12-hour clock with Arabic digits, e.g. ``٣:٠٥ م``."""
    suffix = PM_SUFFIX if instant.hour >= 12 else AM_SUFFIX
    hour = instant.hour % 12 or 12
    return f"{to_arabic_numerals(hour)}:{to_arabic_numerals(f'{instant.minute:02d}')} {suffix}"


def format_countdown(remaining: TimeRemaining) -> str:
    text = f"{remaining.hours:02d}:{remaining.minutes:02d}:{remaining.seconds:02d}"
    return to_arabic_numerals(text)


def _hours_phrase(hours: int) -> str:
    if hours == 1:
        return "ساعة واحدة"
    if hours == 2:
        return "ساعتين"
    return f"{to_arabic_numerals(hours)} ساعات"


def _minutes_phrase(minutes: int) -> str:
    if minutes == 1:
        return "دقيقة واحدة"
    if minutes == 2:
        return "دقيقتين"
    return f"{to_arabic_numerals(minutes)} دقائق"


def _seconds_phrase(seconds: int) -> str:
    if seconds == 1:
        return "ثانية واحدة"
    if seconds == 2:
        return "ثانيتين"
    return f"{to_arabic_numerals(seconds)} ثوان"


def format_time_remaining_ar(milliseconds: float) -> str:
    """Describe a duration in words, e.g. ``ساعتين و٥ دقائق``.

    Seconds are only mentioned once less than a minute is left.
    """
    remaining = TimeRemaining.from_milliseconds(milliseconds)
    parts = []
    if remaining.hours > 0:
        parts.append(_hours_phrase(remaining.hours))
    if remaining.minutes > 0:
        parts.append(_minutes_phrase(remaining.minutes))
    result = " و".join(parts)

    if remaining.hours == 0 and remaining.minutes == 0 and remaining.seconds > 0:
        result = _seconds_phrase(remaining.seconds)
    return result or NOW_TEXT
