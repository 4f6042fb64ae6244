"""Entry point for the prayer times desktop application."""
from __future__ import annotations

import logging
import sys
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, List, Set

try:  # Prefer PyQt5, fall back to Qt for Python if available
    from PyQt5 import QtCore, QtWidgets  # type: ignore
except Exception:  # pragma: no cover - fallback only used when PyQt5 missing
    try:
        from PySide2 import QtCore, QtWidgets  # type: ignore
    except Exception:
        from PySide6 import QtCore, QtWidgets  # type: ignore

try:  # Compatibility alias for Qt signal and slot decorators
    Signal = QtCore.pyqtSignal  # type: ignore[attr-defined]
    Slot = QtCore.pyqtSlot  # type: ignore[attr-defined]
except AttributeError:  # pragma: no cover - PySide compatibility
    Signal = QtCore.Signal  # type: ignore[attr-defined]
    Slot = QtCore.Slot  # type: ignore[attr-defined]

from backend_api import BackendClient, BackendError, Section
from controller import PrayerTimesController, PrayerViewModel, make_clock
from scheduler import PrayerScheduler
from storage import LocalStore, load_config
from ui import PrayerTimesWindow

APP_ROOT = Path(__file__).parent
CONFIG_PATH = APP_ROOT / "config.json"

CITIES_ERROR_TEXT = "فشل في تحميل قائمة المدن. الرجاء التحقق من اتصال الخادم."
UPDATED_TEXT = "تم تحديث مواقيت الصلاة."

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
LOGGER = logging.getLogger(__name__)


class _AsyncDispatcher(QtCore.QObject):
    """Deliver the outcome of one background task on the GUI thread."""

    finished = Signal(object)
    failed = Signal(object)

    def __init__(
        self,
        on_success: Callable[[Any], None],
        on_error: Callable[[Exception], None],
        release: Callable[["_AsyncDispatcher"], None],
    ) -> None:
        super().__init__()
        self._callbacks = (on_success, on_error)
        self._release = release
        self.finished.connect(self._deliver_result)  # type: ignore[attr-defined]
        self.failed.connect(self._deliver_error)  # type: ignore[attr-defined]

    @Slot(object)
    def _deliver_result(self, result: Any) -> None:
        try:
            self._callbacks[0](result)
        finally:
            self._dispose()

    @Slot(object)
    def _deliver_error(self, exc: Exception) -> None:
        try:
            self._callbacks[1](exc)
        finally:
            self._dispose()

    def _dispose(self) -> None:
        self._release(self)
        self.deleteLater()


class _ControllerBridge(QtCore.QObject):
    """Re-emit controller and theme notifications on the GUI thread."""

    view_model_changed = Signal(object)
    theme_changed = Signal(str)


class PrayerApp(QtWidgets.QApplication):
    """Coordinates the window, the prayer controller and the backend client."""

    def __init__(self, argv: List[str], config_path: Path = CONFIG_PATH) -> None:
        super().__init__(argv)
        self.setApplicationName("Prayer Times")

        self._config = load_config(config_path)
        logging.getLogger().setLevel(str(self._config.get("log_level", "INFO")).upper())
        self._executor = ThreadPoolExecutor(max_workers=2)
        self._pending_tasks: Set[_AsyncDispatcher] = set()

        store_path = Path(str(self._config["store_path"]))
        if not store_path.is_absolute():
            store_path = config_path.parent / store_path
        self.store = LocalStore(store_path)

        self.client = BackendClient(
            base_url=str(self._config["api_base_url"]),
            timeout=float(self._config["request_timeout"]),
        )
        self.clock = make_clock(self._config["timezone"])
        self.scheduler = PrayerScheduler(timezone=self._config["timezone"])
        self.scheduler.start()

        self.controller = PrayerTimesController(
            fetch_record=self.client.fetch_today_prayer_time,
            scheduler=self.scheduler,
            executor=self._executor,
            clock=self.clock,
            tick_seconds=int(self._config["refresh_interval_seconds"]),
        )
        LOGGER.debug(
            "Initial state -> timezone=%s saved_city=%s api=%s",
            self._config["timezone"],
            self.store.selected_city,
            self.client.base_url,
        )

        self.window = PrayerTimesWindow()
        self.window.apply_theme(self.controller.theme.value)
        self.window.on_city_selected(self.select_city)
        self.window.on_change_city(self.change_city)
        self.window.on_retry(self.controller.retry)

        self._bridge = _ControllerBridge()
        self._bridge.view_model_changed.connect(self._render_view_model)  # type: ignore[attr-defined]
        self._bridge.theme_changed.connect(self.window.apply_theme)  # type: ignore[attr-defined]
        self.controller.subscribe(self._bridge.view_model_changed.emit)
        self.controller.theme.subscribe(self._bridge.theme_changed.emit)

        self.aboutToQuit.connect(self._cleanup)  # type: ignore
        self.window.show()

        saved_city = self.store.selected_city
        self.load_cities()
        if saved_city:
            self.window.show_prayer_page()
            self.controller.select_city(saved_city)
        else:
            self.window.show_city_selection()

    # ------------------------------------------------------------------
    def load_cities(self) -> None:
        def task() -> List[Section]:
            return self.client.list_sections().items

        def on_success(sections: List[Section]) -> None:
            LOGGER.info("Loaded %d cities", len(sections))
            self.window.show_city_error(None)
            self.window.set_cities([section.name for section in sections], selected=self.store.selected_city)

        def on_error(exc: Exception) -> None:
            if isinstance(exc, BackendError):
                LOGGER.error("Failed to load cities: %s", exc)
            else:
                LOGGER.error("Unexpected error loading cities", exc_info=exc)
            self.window.show_city_error(CITIES_ERROR_TEXT)

        self._run_async(task, on_success, on_error)

    def select_city(self, city: str) -> None:
        LOGGER.info("City selected: %s", city)
        self.store.selected_city = city
        self.window.show_prayer_page()
        self.controller.select_city(city)

    def change_city(self) -> None:
        self.store.selected_city = None
        self.controller.clear_city()
        self.window.show_city_selection()
        if self.window.city_combo.count() == 0:
            self.load_cities()

    @Slot(object)
    def _render_view_model(self, model: PrayerViewModel) -> None:
        self.window.render(model, self.clock())
        if model.next_prayer is not None:
            self.window.set_status(UPDATED_TEXT)

    def _run_async(
        self,
        func: Callable[[], Any],
        on_success: Callable[[Any], None],
        on_error: Callable[[Exception], None],
    ) -> None:
        LOGGER.debug("Running %s in the background", getattr(func, "__name__", func))
        dispatcher = _AsyncDispatcher(on_success, on_error, self._pending_tasks.discard)
        self._pending_tasks.add(dispatcher)

        def relay(future: Future) -> None:
            exc = future.exception()
            if exc is not None:
                dispatcher.failed.emit(exc)
            else:
                dispatcher.finished.emit(future.result())

        self._executor.submit(func).add_done_callback(relay)

    def _cleanup(self) -> None:
        self.controller.close()
        self.scheduler.shutdown()
        self._executor.shutdown(wait=False)


def main() -> int:
    app = PrayerApp(sys.argv)
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
