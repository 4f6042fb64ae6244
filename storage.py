"""Application configuration and the small JSON store for client-side state."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import pytz
from tzlocal import get_localzone_name

from backend_api import DEFAULT_BASE_URL

LOGGER = logging.getLogger(__name__)

SELECTED_CITY_KEY = "selectedCity"
AUTH_TOKEN_KEY = "authToken"

DEFAULT_CONFIG: Dict[str, Any] = {
    "api_base_url": DEFAULT_BASE_URL,
    "request_timeout": 10,
    "refresh_interval_seconds": 60,
    "timezone": None,
    "log_level": "INFO",
    "store_path": "state.json",
}


def load_json(path: Path, default: Dict[str, Any]) -> Dict[str, Any]:
    if not path.exists():
        return dict(default)
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except (OSError, ValueError):
        LOGGER.warning("Could not read %s; using defaults", path, exc_info=True)
        return dict(default)
    if not isinstance(payload, dict):
        LOGGER.warning("Ignoring %s: expected a JSON object", path)
        return dict(default)
    return payload


def save_json(path: Path, payload: Dict[str, Any]) -> None:
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=False)


def resolve_timezone(name: Optional[str]) -> str:
    """Return a valid timezone name, defaulting to the system zone and then UTC."""
    if not name:
        try:
            name = get_localzone_name()
        except Exception:  # pragma: no cover - defensive fallback
            name = None
    if not name:
        LOGGER.warning("Timezone not configured and not detectable; defaulting to UTC")
        return "UTC"
    try:
        pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        LOGGER.warning("Unknown timezone '%s'; falling back to UTC", name)
        return "UTC"
    return name


def load_config(path: Path) -> Dict[str, Any]:
    """Merge the JSON config at *path* over ``DEFAULT_CONFIG``."""
    config = dict(DEFAULT_CONFIG)
    config.update(load_json(path, default={}))
    config["timezone"] = resolve_timezone(config.get("timezone"))
    try:
        config["refresh_interval_seconds"] = max(1, int(config["refresh_interval_seconds"]))
    except (TypeError, ValueError):
        LOGGER.warning("Invalid refresh_interval_seconds %r; using 60", config["refresh_interval_seconds"])
        config["refresh_interval_seconds"] = 60
    LOGGER.debug("Loaded config keys: %s", list(config.keys()))
    return config


class LocalStore:
    """Key/value state persisted to a JSON file (selected city, admin token)."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._data: Dict[str, Any] = load_json(path, default={})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()

    @property
    def selected_city(self) -> Optional[str]:
        return self.get(SELECTED_CITY_KEY) or None

    @selected_city.setter
    def selected_city(self, city: Optional[str]) -> None:
        if city:
            self.set(SELECTED_CITY_KEY, city)
        else:
            self.remove(SELECTED_CITY_KEY)

    @property
    def auth_token(self) -> Optional[str]:
        return self.get(AUTH_TOKEN_KEY) or None

    @auth_token.setter
    def auth_token(self, token: Optional[str]) -> None:
        if token:
            self.set(AUTH_TOKEN_KEY, token)
        else:
            self.remove(AUTH_TOKEN_KEY)

    def _flush(self) -> None:
        try:
            save_json(self._path, self._data)
        except OSError:
            LOGGER.exception("Failed to persist local state to %s", self._path)
