"""HTTP client for the prayer-times backend (cities, prayer times, content and admin CRUD)."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import requests

from prayer_times import PrayerTimeRecord

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://islambackend.fly.dev"

PRAYER_TIME_FORM_FIELDS = (
    "fajr_first_time",
    "fajr_second_time",
    "sunrise_time",
    "dhuhr_time",
    "asr_time",
    "maghrib_time",
    "isha_time",
)


class BackendError(RuntimeError):
    """Raised when the backend cannot be reached or answers with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(BackendError):
    """The backend rejected the bearer token (HTTP 401)."""


class NoPrayerTimesError(BackendError):
    """The backend has no prayer-time record for the requested city."""


@dataclass
class Section:
    id: int
    name: str


@dataclass
class Page:
    items: List[Any]
    meta: Dict[str, Any] = field(default_factory=dict)


def _form(fields: Dict[str, Any]) -> Dict[str, tuple]:
    # requests only sends multipart/form-data when given ``files``
    return {key: (None, str(value)) for key, value in fields.items() if value is not None}


class BackendClient:
    """Thin wrapper over the backend REST API.

    Admin endpoints send the bearer token; whenever a response carries a
    fresh ``token`` it replaces the current one and ``on_token`` is invoked
    so callers can persist it.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        timeout: float = 10,
        session: Optional[requests.Session] = None,
        on_token: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._session = session or requests.Session()
        self.on_token = on_token

    # -- plumbing ------------------------------------------------------------
    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def set_token(self, token: Optional[str]) -> None:
        self.token = token
        if token and self.on_token:
            self.on_token(token)

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        auth: bool = False,
    ) -> Dict[str, Any]:
        headers: Dict[str, str] = {}
        if auth and self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if params:
            params = {key: value for key, value in params.items() if value not in (None, "")}

        url = self.url(path)
        LOGGER.debug("%s %s params=%s", method, url, params)
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                data=data,
                files=files,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            LOGGER.warning("Request %s %s failed: %s", method, url, exc)
            raise BackendError(f"Unable to reach backend: {exc}") from exc
        LOGGER.debug("%s %s -> %s", method, url, response.status_code)

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {"data": payload}

        if response.status_code == 401:
            raise AuthenticationError(self._error_message(payload, response), status_code=401)
        if not response.ok:
            raise BackendError(self._error_message(payload, response), status_code=response.status_code)

        token = payload.get("token")
        if auth and token:
            LOGGER.debug("Backend issued a refreshed token")
            self.set_token(str(token))
        return payload

    @staticmethod
    def _error_message(payload: Dict[str, Any], response: requests.Response) -> str:
        message = payload.get("message") or payload.get("error")
        if isinstance(message, dict):
            message = "; ".join(f"{key}: {value}" for key, value in message.items())
        return str(message or f"HTTP {response.status_code}")

    def _list(self, path: str, key: str, params: Dict[str, Any], auth: bool = False, meta_key: str = "meta") -> Page:
        payload = self._request("GET", path, params=params, auth=auth)
        items = payload.get(key) or []
        return Page(items=list(items), meta=dict(payload.get(meta_key) or {}))

    def _create(self, resource: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", resource, files=_form(fields), auth=True)

    def _update(self, resource: str, fields: Dict[str, Any], params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._request("PUT", resource, params=params, files=_form(fields), auth=True)

    def _delete(self, resource: str, params: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("DELETE", resource, params=params, auth=True)

    # -- public reads --------------------------------------------------------
    def list_sections(self, page: Optional[int] = None, per_page: Optional[int] = None, query: Optional[str] = None) -> Page:
        result = self._list("sections/list", "sections", {"page": page, "per_page": per_page, "q": query})
        result.items = [Section(id=int(item["id"]), name=str(item["name"])) for item in result.items]
        return result

    def list_prayer_times(self, city: str, page: Optional[int] = None, per_page: Optional[int] = None) -> Page:
        result = self._list("prayer-times/list", "prayer_times", {"q": city, "page": page, "per_page": per_page})
        try:
            result.items = [PrayerTimeRecord.from_payload(item) for item in result.items]
        except (KeyError, TypeError, ValueError) as exc:
            raise BackendError(f"Malformed prayer time record: {exc}") from exc
        return result

    def fetch_today_prayer_time(self, city: str) -> PrayerTimeRecord:
        """Return the first record the backend lists for *city*, which is today's."""
        LOGGER.debug("Fetching today's prayer times for %s", city)
        records = self.list_prayer_times(city).items
        if not records:
            raise NoPrayerTimesError(f"No prayer times available for {city}")
        return records[0]

    def search_prayer_times(self, day: Optional[int] = None, month: Optional[int] = None, section: Optional[str] = None) -> List[PrayerTimeRecord]:
        payload = self._request("GET", "prayer-times/search", params={"day": day, "month": month, "section": section})
        try:
            return [PrayerTimeRecord.from_payload(item) for item in payload.get("prayer_times") or []]
        except (KeyError, TypeError, ValueError) as exc:
            raise BackendError(f"Malformed prayer time record: {exc}") from exc

    def list_adhkar(self, page: Optional[int] = None, per_page: Optional[int] = None, query: Optional[str] = None) -> Page:
        return self._list("adhkar/list", "adhkar", {"page": page, "per_page": per_page, "q": query})

    def adhkar_by_category(self, category_id: int, page: Optional[int] = None, per_page: Optional[int] = None) -> Page:
        return self._list("adhkar/category", "adhkar", {"category_id": category_id, "page": page, "per_page": per_page})

    def list_adhkar_categories(self, page: Optional[int] = None, per_page: Optional[int] = None, query: Optional[str] = None) -> Page:
        return self._list("adhkar-categories/list", "categories", {"page": page, "per_page": per_page, "q": query})

    def list_hadiths(self, page: Optional[int] = None, per_page: Optional[int] = None, query: Optional[str] = None) -> Page:
        return self._list("hadiths/list", "hadiths", {"page": page, "per_page": per_page, "q": query})

    def hadiths_by_topic(self, topic: str, page: Optional[int] = None, per_page: Optional[int] = None) -> Page:
        return self._list("hadiths/topic", "hadiths", {"topic": topic, "page": page, "per_page": per_page})

    def list_special_topics(self, page: Optional[int] = None, per_page: Optional[int] = None, query: Optional[str] = None) -> Page:
        return self._list(
            "special-topics/list",
            "specialTopics",
            {"page": page, "per_page": per_page, "q": query},
            meta_key="metadata",
        )

    def special_topics_by_topic(self, topic: str, page: Optional[int] = None, per_page: Optional[int] = None) -> Page:
        return self._list(
            "special-topics/topic",
            "specialTopics",
            {"topic": topic, "page": page, "per_page": per_page},
            meta_key="metadata",
        )

    # -- authentication ------------------------------------------------------
    def login(self, phone_number: str, password: str) -> Dict[str, Any]:
        payload = self._request("POST", "login", data={"phone_number": phone_number, "password": password})
        token = payload.get("token")
        if not token:
            raise AuthenticationError("Login response did not include a token")
        self.set_token(str(token))
        return {"token": token, "expires": payload.get("expires")}

    def me(self) -> Dict[str, Any]:
        payload = self._request("GET", "me", auth=True)
        return dict(payload.get("user") or {})

    def update_me(self, name: Optional[str] = None, phone_number: Optional[str] = None, password: Optional[str] = None) -> Dict[str, Any]:
        payload = self._update("me", {"name": name, "phone_number": phone_number, "password": password})
        return dict(payload.get("user") or {})

    # -- admin: sections -----------------------------------------------------
    def create_section(self, name: str) -> Dict[str, Any]:
        return self._create("sections", {"name": name})

    def update_section(self, section_id: int, name: str) -> Dict[str, Any]:
        return self._update("sections", {"id": section_id, "name": name})

    def delete_section(self, section_id: int) -> Dict[str, Any]:
        return self._delete("sections", {"id": section_id})

    # -- admin: prayer times -------------------------------------------------
    def create_prayer_time(self, section: str, day: int, month: int, times: Dict[str, str]) -> Dict[str, Any]:
        fields: Dict[str, Any] = {"day": day, "month": month, "section": section}
        fields.update({name: times.get(name) for name in PRAYER_TIME_FORM_FIELDS})
        return self._create("prayer-times", fields)

    def update_prayer_time(self, section: str, day: int, month: int, times: Dict[str, str]) -> Dict[str, Any]:
        fields = {name: times.get(name) for name in PRAYER_TIME_FORM_FIELDS}
        return self._update("prayer-times", fields, params={"day": day, "month": month, "section": section})

    def delete_prayer_time(self, section: str, day: int, month: int) -> Dict[str, Any]:
        return self._delete("prayer-times", {"day": day, "month": month, "section": section})

    # -- admin: adhkar and categories -----------------------------------------
    def create_adhkar(self, text: str, source: str, repeat: int, category_id: int, active: bool = True) -> Dict[str, Any]:
        return self._create(
            "adhkar",
            {"text": text, "source": source, "repeat": repeat, "category_id": category_id, "active": str(active).lower()},
        )

    def update_adhkar(self, adhkar_id: int, text: str, source: str, repeat: int, category_id: int) -> Dict[str, Any]:
        return self._update(
            "adhkar",
            {"id": adhkar_id, "text": text, "source": source, "repeat": repeat, "category_id": category_id},
        )

    def delete_adhkar(self, adhkar_id: int) -> Dict[str, Any]:
        return self._delete("adhkar", {"id": adhkar_id})

    def create_adhkar_category(self, name: str, description: str = "") -> Dict[str, Any]:
        return self._create("adhkar-categories", {"name": name, "description": description})

    def update_adhkar_category(self, category_id: int, name: str, description: str = "") -> Dict[str, Any]:
        return self._update("adhkar-categories", {"id": category_id, "name": name, "description": description})

    def delete_adhkar_category(self, category_id: int) -> Dict[str, Any]:
        return self._delete("adhkar-categories", {"id": category_id})

    # -- admin: hadiths and special topics -----------------------------------
    def create_hadith(self, text: str, source: str, topic: str) -> Dict[str, Any]:
        return self._create("hadiths", {"text": text, "source": source, "topic": topic})

    def update_hadith(self, hadith_id: int, text: str, source: str, topic: str) -> Dict[str, Any]:
        return self._update("hadiths", {"id": hadith_id, "text": text, "source": source, "topic": topic})

    def delete_hadith(self, hadith_id: int) -> Dict[str, Any]:
        return self._delete("hadiths", {"id": hadith_id})

    def create_special_topic(self, topic: str, content: str) -> Dict[str, Any]:
        return self._create("special-topics", {"topic": topic, "content": content})

    def update_special_topic(self, topic_id: int, topic: str, content: str) -> Dict[str, Any]:
        return self._update("special-topics", {"id": topic_id, "topic": topic, "content": content})

    def delete_special_topic(self, topic_id: int) -> Dict[str, Any]:
        return self._delete("special-topics", {"id": topic_id})

    # -- notifications -------------------------------------------------------
    def subscribe(self, push_token: str, section_id: int) -> None:
        """Register a push token for a section; failures are logged, not raised."""
        try:
            self._request("POST", "subscribe", data={"token": push_token, "section_id": section_id})
        except BackendError:
            LOGGER.warning("Push subscription for section %s failed", section_id, exc_info=True)
