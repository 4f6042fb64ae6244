"""Colour palettes for each prayer period."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class Palette:
    background: str
    surface: str
    text: str
    muted: str
    accent: str


THEME_PALETTES: Dict[str, Palette] = {
    "fajr": Palette(background="#1e1b4b", surface="#312e81", text="#e0e7ff", muted="#a5b4fc", accent="#f9a8d4"),
    "sunrise": Palette(background="#fff7ed", surface="#ffedd5", text="#7c2d12", muted="#c2410c", accent="#f97316"),
    "dhuhr": Palette(background="#e0f2fe", surface="#ffffff", text="#0c4a6e", muted="#0369a1", accent="#0ea5e9"),
    "asr": Palette(background="#fef3c7", surface="#fffbeb", text="#78350f", muted="#b45309", accent="#d97706"),
    "maghrib": Palette(background="#4c0519", surface="#881337", text="#ffe4e6", muted="#fda4af", accent="#fb7185"),
    "isha": Palette(background="#020617", surface="#0f172a", text="#e2e8f0", muted="#94a3b8", accent="#38bdf8"),
}


def palette_for(period: str) -> Palette:
    return THEME_PALETTES.get(period, THEME_PALETTES["isha"])


def stylesheet_for(period: str) -> str:
    palette = palette_for(period)
    return f"""
        QWidget#PrayerWindow, QWidget#PrayerWindow QWidget {{
            background-color: {palette.background};
            color: {palette.text};
        }}
        QFrame#PrayerRow {{
            background-color: {palette.surface};
            border-radius: 8px;
        }}
        QFrame#PrayerRow[active="true"] {{
            border: 2px solid {palette.accent};
        }}
        QLabel#Muted {{
            color: {palette.muted};
        }}
        QLabel#Error {{
            color: #f87171;
        }}
        QProgressBar {{
            background-color: {palette.surface};
            border: none;
            border-radius: 4px;
            height: 8px;
        }}
        QProgressBar::chunk {{
            background-color: {palette.accent};
            border-radius: 4px;
        }}
        QPushButton {{
            background-color: {palette.accent};
            color: {palette.background};
            border-radius: 6px;
            padding: 6px 14px;
        }}
    """
