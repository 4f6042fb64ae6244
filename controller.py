"""Live prayer view model: fetch a city's record once, then recompute on a fixed tick."""
from __future__ import annotations

import functools
import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import datetime, time as time_module, timedelta
from typing import Callable, List, Optional

import pytz

from backend_api import BackendError, NoPrayerTimesError
from prayer_times import (
    PRAYER_ORDER,
    PrayerInfo,
    PrayerTimeRecord,
    TimeRemaining,
    calculate_progress,
    classify_period,
    default_theme_for_hour,
    get_last_prayer,
    get_next_prayer,
    time_remaining_until,
)
from scheduler import PrayerScheduler

LOGGER = logging.getLogger(__name__)

IDLE = "idle"
LOADING = "loading"
READY = "ready"
ERROR = "error"

NOT_FOUND_MESSAGE = "لم يتم العثور على مواقيت الصلاة لهذه المدينة. الرجاء اختيار مدينة أخرى."
GENERIC_ERROR_MESSAGE = "فشل في تحميل مواقيت الصلاة. الرجاء المحاولة مرة أخرى."

DAILY_REFRESH_AT = time_module(hour=0, minute=5)
REFETCH_RETRY_DELAY = timedelta(minutes=5)


def make_clock(timezone_name: str) -> Callable[[], datetime]:
    """Return a callable giving the naive wall-clock time in *timezone_name*."""
    tzinfo = pytz.timezone(timezone_name)

    def now() -> datetime:
        return datetime.now(tzinfo).replace(tzinfo=None)

    return now


def next_refresh_time(reference: datetime) -> datetime:
    return datetime.combine(reference.date() + timedelta(days=1), DAILY_REFRESH_AT)


class ThemeState:
    """The active prayer period, shared with presentation code by reference."""

    def __init__(self, value: str = "isha") -> None:
        self._value = value
        self._listeners: List[Callable[[str], None]] = []
        self._lock = threading.Lock()

    @property
    def value(self) -> str:
        return self._value

    def set(self, value: str) -> bool:
        """Update the theme; listeners only hear about actual changes."""
        if value not in PRAYER_ORDER:
            raise ValueError(f"Unknown prayer period: {value}")
        with self._lock:
            if value == self._value:
                return False
            self._value = value
            listeners = list(self._listeners)
        LOGGER.info("Theme changed to %s", value)
        for listener in listeners:
            listener(value)
        return True

    def subscribe(self, listener: Callable[[str], None]) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe


@dataclass
class PrayerViewModel:
    state: str = IDLE
    city: Optional[str] = None
    prayer_time: Optional[PrayerTimeRecord] = None
    error: Optional[str] = None
    not_found: bool = False
    period: Optional[str] = None
    next_prayer: Optional[PrayerInfo] = None
    last_prayer: Optional[PrayerInfo] = None
    time_remaining: TimeRemaining = field(default_factory=TimeRemaining)
    progress: float = 0.0

    @property
    def loading(self) -> bool:
        return self.state == LOADING


class PrayerTimesController:
    """Owns the prayer view model and the timers that keep it current.

    States: idle (no city), loading (fetch in flight), ready (record loaded,
    tick running) and error. Selecting a city always starts a new fetch; the
    result of an older fetch that finishes later is ignored.
    """

    def __init__(
        self,
        fetch_record: Callable[[str], PrayerTimeRecord],
        scheduler: PrayerScheduler,
        executor: Optional[Executor] = None,
        clock: Optional[Callable[[], datetime]] = None,
        theme: Optional[ThemeState] = None,
        tick_seconds: int = 60,
    ) -> None:
        self._fetch_record = fetch_record
        self._scheduler = scheduler
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=2)
        self._clock = clock or datetime.now
        self.theme = theme or ThemeState(default_theme_for_hour(self._clock().hour))
        self.tick_seconds = tick_seconds

        self._lock = threading.RLock()
        self._generation = 0
        self._model = PrayerViewModel()
        self._listeners: List[Callable[[PrayerViewModel], None]] = []

    # -- observation ----------------------------------------------------------
    @property
    def view_model(self) -> PrayerViewModel:
        with self._lock:
            return replace(self._model)

    @property
    def state(self) -> str:
        return self._model.state

    def subscribe(self, listener: Callable[[PrayerViewModel], None]) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, snapshot: PrayerViewModel) -> None:
        # callers hold the lock so listeners see snapshots in model order
        for listener in list(self._listeners):
            listener(snapshot)

    # -- transitions ----------------------------------------------------------
    def select_city(self, city: Optional[str]) -> None:
        if not city:
            self.clear_city()
            return

        with self._lock:
            self._generation += 1
            generation = self._generation
            self._scheduler.cancel_all()
            self._model = PrayerViewModel(state=LOADING, city=city)
            LOGGER.info("Loading prayer times for %s", city)
            self._notify(replace(self._model))

        future = self._executor.submit(self._fetch_record, city)
        future.add_done_callback(functools.partial(self._on_fetch_done, generation, city))

    def retry(self) -> None:
        city = self._model.city
        if city:
            self.select_city(city)

    def clear_city(self) -> None:
        with self._lock:
            self._generation += 1
            self._scheduler.cancel_all()
            self._model = PrayerViewModel()
            self._notify(replace(self._model))

    def close(self) -> None:
        with self._lock:
            self._generation += 1
            self._scheduler.cancel_all()
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    def _on_fetch_done(self, generation: int, city: str, future: Future) -> None:
        try:
            record = future.result()
        except NoPrayerTimesError:
            LOGGER.warning("No prayer times available for %s", city)
            self._fail(generation, city, NOT_FOUND_MESSAGE, not_found=True)
            return
        except BackendError as exc:
            LOGGER.error("Failed to load prayer times for %s: %s", city, exc)
            self._fail(generation, city, GENERIC_ERROR_MESSAGE)
            return
        except Exception:
            LOGGER.exception("Unexpected error while loading prayer times for %s", city)
            self._fail(generation, city, GENERIC_ERROR_MESSAGE)
            return

        with self._lock:
            if generation != self._generation:
                LOGGER.debug("Discarding stale prayer times for %s", city)
                return
            self._model = PrayerViewModel(state=READY, city=city, prayer_time=record)
            self._scheduler.schedule_tick(self.tick_seconds, self._on_tick)
            self._schedule_refetch(next_refresh_time(self._clock()), generation, city)
            LOGGER.info("Prayer times loaded for %s (day=%s month=%s)", city, record.day, record.month)
            self._refresh_loaded(generation, city)

    def _refresh_loaded(self, generation: int, city: str) -> None:
        try:
            self.refresh()
        except Exception:
            LOGGER.exception("Could not compute prayer times for %s", city)
            self._scheduler.cancel_all()
            self._fail(generation, city, GENERIC_ERROR_MESSAGE)

    def _fail(self, generation: int, city: str, message: str, not_found: bool = False) -> None:
        with self._lock:
            if generation != self._generation:
                LOGGER.debug("Discarding stale failure for %s", city)
                return
            self._model = PrayerViewModel(state=ERROR, city=city, error=message, not_found=not_found)
            self._notify(replace(self._model))

    def _schedule_refetch(self, when: datetime, generation: int, city: str) -> None:
        self._scheduler.schedule_refresh(when, functools.partial(self._refetch, generation, city))

    def _refetch(self, generation: int, city: str) -> None:
        """Fetch the new day's record while the current one stays on screen."""
        with self._lock:
            if generation != self._generation:
                return
        LOGGER.info("New day; refetching prayer times for %s", city)
        future = self._executor.submit(self._fetch_record, city)
        future.add_done_callback(functools.partial(self._on_refetch_done, generation, city))

    def _on_refetch_done(self, generation: int, city: str, future: Future) -> None:
        try:
            record = future.result()
        except Exception as exc:
            with self._lock:
                if generation != self._generation:
                    return
                retry_at = self._clock() + REFETCH_RETRY_DELAY
                LOGGER.warning("Refetch for %s failed (%s); keeping current times, retrying at %s", city, exc, retry_at)
                self._schedule_refetch(retry_at, generation, city)
            return

        with self._lock:
            if generation != self._generation:
                LOGGER.debug("Discarding stale refetch for %s", city)
                return
            self._model = replace(self._model, prayer_time=record)
            self._schedule_refetch(next_refresh_time(self._clock()), generation, city)
            self._refresh_loaded(generation, city)

    # -- derived values -------------------------------------------------------
    def refresh(self) -> None:
        """Recompute next/last prayer, remaining time, progress and theme for now."""
        with self._lock:
            record = self._model.prayer_time
            if self._model.state != READY or record is None:
                return
            now = self._clock()
            next_prayer = get_next_prayer(record, now)
            last_prayer = get_last_prayer(record, now)
            period = classify_period(record, now)
            self._model = replace(
                self._model,
                period=period,
                next_prayer=next_prayer,
                last_prayer=last_prayer,
                time_remaining=time_remaining_until(now, next_prayer.time),
                progress=calculate_progress(now, last_prayer.time, next_prayer.time),
            )
            LOGGER.debug(
                "Refreshed at %s: period=%s next=%s progress=%.1f",
                now,
                period,
                next_prayer.name,
                self._model.progress,
            )
            self.theme.set(period)
            self._notify(replace(self._model))

    def _on_tick(self) -> None:
        try:
            self.refresh()
        except Exception:
            LOGGER.exception("Prayer view refresh failed")
