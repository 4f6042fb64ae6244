from datetime import date, datetime, timedelta

import pytest

from prayer_times import (
    PRAYER_ORDER,
    PrayerTimeRecord,
    TimeRemaining,
    adjust_leap_day,
    calculate_progress,
    classify_period,
    default_theme_for_hour,
    format_hhmm,
    get_last_prayer,
    get_next_prayer,
    is_leap_year,
    normalize_time,
    ordered_from_next,
    time_remaining_until,
    to_instant,
)

DAY = date(2025, 6, 10)


def build_record(**overrides) -> PrayerTimeRecord:
    fields = {
        "id": 1,
        "day": 10,
        "month": 6,
        "fajr_first_time": "05:15",
        "fajr_second_time": "05:45",
        "sunrise_time": "06:45",
        "dhuhr_time": "12:15",
        "asr_time": "15:30",
        "maghrib_time": "17:45",
        "isha_time": "19:15",
    }
    fields.update(overrides)
    return PrayerTimeRecord(**fields)


def at(hour: int, minute: int = 0, second: int = 0, day: date = DAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, second)


RECORD = build_record()


def test_to_instant_anchors_on_the_given_day():
    instant = to_instant("05:15", at(23, 59, 30))
    assert instant == datetime(2025, 6, 10, 5, 15)
    assert to_instant("19:05", date(2024, 2, 29)) == datetime(2024, 2, 29, 19, 5)


@pytest.mark.parametrize("value", ["00:00", "05:07", "12:30", "23:59"])
def test_format_hhmm_reproduces_input(value):
    assert format_hhmm(to_instant(value, DAY)) == value


def test_normalize_time_strips_iso_datetimes():
    assert normalize_time("0000-01-01T05:15:00Z") == "05:15"
    assert normalize_time("2025-06-10T19:15:00+02:00") == "19:15"
    assert normalize_time("12:15") == "12:15"


def test_from_payload_reads_backend_record():
    record = PrayerTimeRecord.from_payload(
        {
            "id": 7,
            "day": 10,
            "month": 6,
            "fajr_first_time": "0000-01-01T05:15:00Z",
            "fajr_second_time": "05:45",
            "sunrise_time": "06:45",
            "dhuhr_time": "12:15",
            "asr_time": "15:30",
            "maghrib_time": "17:45",
            "isha_time": "19:15",
            "section_id": 3,
            "name": "Tripoli",
            "created_at": "2025-01-01T00:00:00Z",
        }
    )
    assert record.fajr_first_time == "05:15"
    assert record.section_id == 3
    assert record.name == "Tripoli"
    assert [name for name, _ in record.period_times()] == PRAYER_ORDER


def test_period_times_use_fajr_adhan_not_iqama():
    assert dict(RECORD.period_times())["fajr"] == "05:15"


@pytest.mark.parametrize(
    "now, expected",
    [
        (at(0, 0), "isha"),
        (at(2, 0), "isha"),
        (at(5, 14, 59), "isha"),
        (at(5, 15), "fajr"),
        (at(6, 44), "fajr"),
        (at(6, 45), "sunrise"),
        (at(12, 15), "dhuhr"),
        (at(13, 0), "dhuhr"),
        (at(15, 30), "asr"),
        (at(17, 45), "maghrib"),
        (at(19, 14, 59), "maghrib"),
        (at(19, 15), "isha"),
        (at(23, 50), "isha"),
    ],
)
def test_classify_period(now, expected):
    assert classify_period(RECORD, now) == expected


def test_classify_period_covers_the_whole_day_without_gaps():
    now = at(0, 0)
    seen = []
    while now.date() == DAY:
        period = classify_period(RECORD, now)
        assert period in PRAYER_ORDER
        if not seen or seen[-1] != period:
            seen.append(period)
        now += timedelta(minutes=1)
    assert seen == ["isha", "fajr", "sunrise", "dhuhr", "asr", "maghrib", "isha"]


def test_mid_day_scenario():
    now = at(13, 0)
    next_prayer = get_next_prayer(RECORD, now)
    last_prayer = get_last_prayer(RECORD, now)

    assert classify_period(RECORD, now) == "dhuhr"
    assert (next_prayer.name, next_prayer.time) == ("asr", at(15, 30))
    assert (last_prayer.name, last_prayer.time) == ("dhuhr", at(12, 15))
    assert calculate_progress(now, last_prayer.time, next_prayer.time) == pytest.approx(45 / 195 * 100)


def test_post_isha_rollover():
    now = at(23, 50)
    next_prayer = get_next_prayer(RECORD, now)
    last_prayer = get_last_prayer(RECORD, now)

    assert next_prayer.name == "fajr"
    assert next_prayer.time == datetime(2025, 6, 11, 5, 15)
    assert (last_prayer.name, last_prayer.time) == ("isha", at(19, 15))


def test_pre_fajr_rollover():
    now = at(2, 0)
    next_prayer = get_next_prayer(RECORD, now)
    last_prayer = get_last_prayer(RECORD, now)

    assert (next_prayer.name, next_prayer.time) == ("fajr", at(5, 15))
    assert last_prayer.name == "isha"
    assert last_prayer.time == datetime(2025, 6, 9, 19, 15)


def test_exact_boundary_counts_as_passed():
    now = at(12, 15)
    assert classify_period(RECORD, now) == "dhuhr"
    assert get_last_prayer(RECORD, now).name == "dhuhr"
    assert get_last_prayer(RECORD, now).time == now
    assert get_next_prayer(RECORD, now).name == "asr"


def test_exact_isha_rolls_next_to_tomorrow():
    now = at(19, 15)
    assert get_last_prayer(RECORD, now).name == "isha"
    assert get_next_prayer(RECORD, now).time == datetime(2025, 6, 11, 5, 15)


def test_next_and_last_bracket_now_through_the_day():
    now = at(0, 0)
    while now.date() == DAY:
        assert get_next_prayer(RECORD, now).time > now
        assert get_last_prayer(RECORD, now).time <= now
        now += timedelta(minutes=7)


def test_rollover_across_month_and_year_ends():
    new_years_eve = datetime(2024, 12, 31, 23, 0)
    assert get_next_prayer(RECORD, new_years_eve).time == datetime(2025, 1, 1, 5, 15)
    new_years_day = datetime(2025, 1, 1, 1, 0)
    assert get_last_prayer(RECORD, new_years_day).time == datetime(2024, 12, 31, 19, 15)


def test_next_prayer_after_feb_28_in_common_year_is_march_first():
    now = datetime(2023, 2, 28, 22, 0)
    assert get_next_prayer(RECORD, now).time == datetime(2023, 3, 1, 5, 15)


def test_next_prayer_after_feb_28_in_leap_year_is_feb_29():
    now = datetime(2024, 2, 28, 22, 0)
    assert get_next_prayer(RECORD, now).time == datetime(2024, 2, 29, 5, 15)


def test_last_prayer_before_fajr_on_march_first():
    assert get_last_prayer(RECORD, datetime(2023, 3, 1, 3, 0)).time == datetime(2023, 2, 28, 19, 15)
    assert get_last_prayer(RECORD, datetime(2024, 3, 1, 3, 0)).time == datetime(2024, 2, 29, 19, 15)


def test_leap_year_helpers():
    assert is_leap_year(2024)
    assert is_leap_year(2000)
    assert not is_leap_year(1900)
    assert not is_leap_year(2023)
    assert adjust_leap_day(2023, 2, 29) == date(2023, 3, 1)
    assert adjust_leap_day(2023, 2, 29, forward=False) == date(2023, 2, 28)
    assert adjust_leap_day(2024, 2, 29) == date(2024, 2, 29)


def test_progress_starts_at_zero_and_reaches_hundred():
    last_time = at(12, 15)
    next_time = at(15, 30)
    assert calculate_progress(last_time, last_time, next_time) == 0
    assert calculate_progress(next_time, last_time, next_time) == 100
    assert calculate_progress(at(16, 0), last_time, next_time) == 100


def test_progress_is_monotonic_across_midnight():
    previous = -1.0
    now = at(19, 15)
    end = datetime(2025, 6, 11, 5, 15)
    while now < end:
        last_prayer = get_last_prayer(RECORD, now)
        next_prayer = get_next_prayer(RECORD, now)
        progress = calculate_progress(now, last_prayer.time, next_prayer.time)
        assert 0 <= progress <= 100
        assert progress >= previous
        previous = progress
        now += timedelta(minutes=5)
    assert previous > 99


def test_time_remaining_decomposes_duration():
    remaining = time_remaining_until(at(13, 0), at(15, 30))
    assert remaining == TimeRemaining(hours=2, minutes=30, seconds=0)
    assert remaining.total_seconds == 9000


def test_time_remaining_rolls_negative_delta_forward():
    remaining = time_remaining_until(at(23, 50), at(5, 15))
    assert remaining == TimeRemaining(hours=5, minutes=25, seconds=0)


def test_time_remaining_from_milliseconds_floors():
    assert TimeRemaining.from_milliseconds(3_723_999) == TimeRemaining(1, 2, 3)
    assert TimeRemaining.from_milliseconds(-5) == TimeRemaining(0, 0, 0)


def test_ordered_from_next_starts_with_upcoming_prayer():
    names = [info.name for info in ordered_from_next(RECORD, at(13, 0))]
    assert names == ["asr", "maghrib", "isha", "fajr", "sunrise", "dhuhr"]
    names = [info.name for info in ordered_from_next(RECORD, at(23, 0))]
    assert names == PRAYER_ORDER


@pytest.mark.parametrize(
    "hour, expected",
    [(4, "fajr"), (7, "sunrise"), (13, "dhuhr"), (16, "asr"), (19, "maghrib"), (21, "isha"), (2, "isha")],
)
def test_default_theme_for_hour(hour, expected):
    assert default_theme_for_hour(hour) == expected
