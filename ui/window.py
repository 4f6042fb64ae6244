"""Main window: city selection and the live prayer-times page."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

try:  # Prefer PyQt5, fall back to Qt for Python
    from PyQt5 import QtCore, QtWidgets  # type: ignore
except Exception:  # pragma: no cover - fallback path
    try:
        from PySide2 import QtCore, QtWidgets  # type: ignore
    except Exception:
        from PySide6 import QtCore, QtWidgets  # type: ignore

from controller import ERROR, LOADING, READY, PrayerViewModel
from formatting import format_countdown, format_time_ar, format_time_remaining_ar, prayer_name_ar
from prayer_times import PRAYER_ORDER, ordered_from_next, to_instant
from ui.themes import stylesheet_for

CITY_PAGE = 0
PRAYER_PAGE = 1

LOADING_TEXT = "جارٍ تحميل مواقيت الصلاة..."
SELECT_CITY_TEXT = "اختر مدينتك"
SHOW_TIMES_TEXT = "عرض المواقيت"
CHANGE_CITY_TEXT = "تغيير المدينة"
RETRY_TEXT = "إعادة المحاولة"
NEXT_PRAYER_TEXT = "الصلاة القادمة: {name}"
REMAINING_TEXT = "متبقي {remaining}"
FAJR_IQAMA_TEXT = "الإقامة {time}"


class PrayerTimesWindow(QtWidgets.QMainWindow):
    """Main application window displaying prayer times for the selected city."""

    def __init__(self) -> None:
        super().__init__()
        self._city_handler: Optional[Callable[[str], None]] = None
        self._change_city_handler: Optional[Callable[[], None]] = None
        self._retry_handler: Optional[Callable[[], None]] = None
        self._theme = "isha"
        self.prayer_rows: Dict[str, Dict[str, Any]] = {}
        self._display_order: List[str] = list(PRAYER_ORDER)

        self.setObjectName("PrayerWindow")
        self.setWindowTitle("مواقيت الصلاة")
        self.setAttribute(QtCore.Qt.WA_StyledBackground, True)
        self.setLayoutDirection(QtCore.Qt.RightToLeft)
        self.resize(520, 720)

        central = QtWidgets.QWidget()
        self.setCentralWidget(central)
        root_layout = QtWidgets.QVBoxLayout(central)
        root_layout.setContentsMargins(24, 24, 24, 24)
        root_layout.setSpacing(16)

        self.page_stack = QtWidgets.QStackedWidget()
        self.page_stack.addWidget(self._build_city_page())
        self.page_stack.addWidget(self._build_prayer_page())
        root_layout.addWidget(self.page_stack, stretch=1)

        self.status_label = QtWidgets.QLabel("")
        self.status_label.setObjectName("Muted")
        root_layout.addWidget(self.status_label)

        self.apply_theme(self._theme)

    # -- construction ---------------------------------------------------------
    def _build_city_page(self) -> QtWidgets.QWidget:
        page = QtWidgets.QWidget()
        layout = QtWidgets.QVBoxLayout(page)
        layout.setSpacing(12)
        layout.addStretch()

        title = QtWidgets.QLabel(SELECT_CITY_TEXT)
        title_font = title.font()
        title_font.setPointSize(18)
        title_font.setBold(True)
        title.setFont(title_font)
        title.setAlignment(QtCore.Qt.AlignCenter)
        layout.addWidget(title)

        self.city_combo = QtWidgets.QComboBox()
        self.city_combo.setEditable(False)
        layout.addWidget(self.city_combo)

        self.city_error_label = QtWidgets.QLabel("")
        self.city_error_label.setObjectName("Error")
        self.city_error_label.setWordWrap(True)
        self.city_error_label.hide()
        layout.addWidget(self.city_error_label)

        self.show_times_button = QtWidgets.QPushButton(SHOW_TIMES_TEXT)
        self.show_times_button.clicked.connect(self._emit_city_selected)  # type: ignore[attr-defined]
        layout.addWidget(self.show_times_button)
        layout.addStretch()
        return page

    def _build_prayer_page(self) -> QtWidgets.QWidget:
        page = QtWidgets.QWidget()
        layout = QtWidgets.QVBoxLayout(page)
        layout.setSpacing(12)

        header = QtWidgets.QHBoxLayout()
        self.city_label = QtWidgets.QLabel("")
        city_font = self.city_label.font()
        city_font.setPointSize(18)
        city_font.setBold(True)
        self.city_label.setFont(city_font)
        header.addWidget(self.city_label, stretch=1)

        self.change_city_button = QtWidgets.QPushButton(CHANGE_CITY_TEXT)
        self.change_city_button.clicked.connect(self._emit_change_city)  # type: ignore[attr-defined]
        header.addWidget(self.change_city_button)
        layout.addLayout(header)

        self.next_prayer_label = QtWidgets.QLabel("")
        next_font = self.next_prayer_label.font()
        next_font.setPointSize(16)
        next_font.setBold(True)
        self.next_prayer_label.setFont(next_font)
        layout.addWidget(self.next_prayer_label)

        self.countdown_label = QtWidgets.QLabel("")
        countdown_font = self.countdown_label.font()
        countdown_font.setPointSize(28)
        self.countdown_label.setFont(countdown_font)
        layout.addWidget(self.countdown_label)

        self.remaining_label = QtWidgets.QLabel("")
        self.remaining_label.setObjectName("Muted")
        layout.addWidget(self.remaining_label)

        self.progress_bar = QtWidgets.QProgressBar()
        self.progress_bar.setRange(0, 1000)
        self.progress_bar.setTextVisible(False)
        layout.addWidget(self.progress_bar)

        self.message_label = QtWidgets.QLabel("")
        self.message_label.setWordWrap(True)
        self.message_label.hide()
        layout.addWidget(self.message_label)

        self.retry_button = QtWidgets.QPushButton(RETRY_TEXT)
        self.retry_button.clicked.connect(self._emit_retry)  # type: ignore[attr-defined]
        self.retry_button.hide()
        layout.addWidget(self.retry_button)

        self.prayer_container = QtWidgets.QWidget()
        self.prayer_layout = QtWidgets.QVBoxLayout(self.prayer_container)
        self.prayer_layout.setContentsMargins(0, 0, 0, 0)
        self.prayer_layout.setSpacing(8)
        for name in PRAYER_ORDER:
            self._ensure_prayer_row(name)
        layout.addWidget(self.prayer_container)
        layout.addStretch()
        return page

    def _ensure_prayer_row(self, prayer_name: str) -> Dict[str, Any]:
        row = self.prayer_rows.get(prayer_name)
        if row is not None:
            return row

        frame = QtWidgets.QFrame()
        frame.setObjectName("PrayerRow")
        frame.setProperty("active", False)
        layout = QtWidgets.QHBoxLayout(frame)
        layout.setContentsMargins(14, 10, 14, 10)

        name_label = QtWidgets.QLabel(prayer_name_ar(prayer_name))
        time_label = QtWidgets.QLabel("--:--")
        detail_label = QtWidgets.QLabel("")
        detail_label.setObjectName("Muted")

        layout.addWidget(name_label, stretch=1)
        layout.addWidget(detail_label)
        layout.addWidget(time_label)

        row = {"frame": frame, "name": name_label, "time": time_label, "detail": detail_label}
        self.prayer_rows[prayer_name] = row
        self.prayer_layout.addWidget(frame)
        return row

    # -- handler wiring ---------------------------------------------------------
    def on_city_selected(self, handler: Callable[[str], None]) -> None:
        self._city_handler = handler

    def on_change_city(self, handler: Callable[[], None]) -> None:
        self._change_city_handler = handler

    def on_retry(self, handler: Callable[[], None]) -> None:
        self._retry_handler = handler

    def _emit_city_selected(self) -> None:
        city = self.city_combo.currentText().strip()
        if city and self._city_handler:
            self._city_handler(city)

    def _emit_change_city(self) -> None:
        if self._change_city_handler:
            self._change_city_handler()

    def _emit_retry(self) -> None:
        if self._retry_handler:
            self._retry_handler()

    # -- updates ------------------------------------------------------------------
    def set_status(self, text: str) -> None:
        self.status_label.setText(text)

    def set_cities(self, cities: Sequence[str], selected: Optional[str] = None) -> None:
        self.city_combo.clear()
        self.city_combo.addItems(list(cities))
        if selected:
            index = self.city_combo.findText(selected)
            if index >= 0:
                self.city_combo.setCurrentIndex(index)
        self.show_times_button.setEnabled(bool(cities))

    def show_city_error(self, message: Optional[str]) -> None:
        self.city_error_label.setText(message or "")
        self.city_error_label.setVisible(bool(message))

    def show_city_selection(self) -> None:
        self.page_stack.setCurrentIndex(CITY_PAGE)

    def show_prayer_page(self) -> None:
        self.page_stack.setCurrentIndex(PRAYER_PAGE)

    @property
    def current_page(self) -> int:
        return self.page_stack.currentIndex()

    def render(self, model: PrayerViewModel, now: datetime) -> None:
        """Reflect a controller view-model snapshot in the widgets."""
        self.city_label.setText(model.city or "")
        self.prayer_container.setVisible(model.state == READY)
        for widget in (self.next_prayer_label, self.countdown_label, self.remaining_label, self.progress_bar):
            widget.setVisible(model.state == READY)
        self.retry_button.setVisible(model.state == ERROR and not model.not_found)

        if model.state == LOADING:
            self._show_message(LOADING_TEXT, error=False)
            return
        if model.state == ERROR:
            self._show_message(model.error or "", error=True)
            return
        if model.state != READY or model.prayer_time is None or model.next_prayer is None:
            self._show_message("", error=False)
            return

        self._show_message("", error=False)
        self.next_prayer_label.setText(NEXT_PRAYER_TEXT.format(name=prayer_name_ar(model.next_prayer.name)))
        self.countdown_label.setText(format_countdown(model.time_remaining))
        self.remaining_label.setText(
            REMAINING_TEXT.format(remaining=format_time_remaining_ar(model.time_remaining.total_seconds * 1000))
        )
        self.progress_bar.setValue(int(round(model.progress * 10)))
        self.update_prayers(model, now)

    def update_prayers(self, model: PrayerViewModel, now: datetime) -> None:
        record = model.prayer_time
        if record is None:
            return
        ordered = ordered_from_next(record, now)
        for index, info in enumerate(ordered):
            row = self._ensure_prayer_row(info.name)
            row["time"].setText(format_time_ar(info.time))
            self.prayer_layout.insertWidget(index, row["frame"])
        self.prayer_rows["fajr"]["detail"].setText(
            FAJR_IQAMA_TEXT.format(time=format_time_ar(to_instant(record.fajr_second_time, now)))
        )
        self._display_order = [info.name for info in ordered]
        self._highlight_prayer(model.next_prayer.name if model.next_prayer else None)

    def _highlight_prayer(self, prayer_name: Optional[str]) -> None:
        for name, row in self.prayer_rows.items():
            frame = row["frame"]
            frame.setProperty("active", prayer_name == name)
            frame.style().unpolish(frame)
            frame.style().polish(frame)

    def _show_message(self, text: str, error: bool) -> None:
        self.message_label.setObjectName("Error" if error else "Muted")
        self.message_label.setText(text)
        self.message_label.setVisible(bool(text))
        self.message_label.style().unpolish(self.message_label)
        self.message_label.style().polish(self.message_label)

    @property
    def display_order(self) -> List[str]:
        return list(self._display_order)

    @property
    def theme(self) -> str:
        return self._theme

    def apply_theme(self, theme: str) -> None:
        """Apply the stylesheet for the given prayer period."""
        self._theme = theme
        self.setStyleSheet(stylesheet_for(theme))
