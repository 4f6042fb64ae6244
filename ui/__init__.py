"""UI package for the prayer times application."""

from .themes import THEME_PALETTES, palette_for
from .window import PrayerTimesWindow

__all__ = ["PrayerTimesWindow", "THEME_PALETTES", "palette_for"]
