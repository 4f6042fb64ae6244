import pytest
import requests
import responses
from responses import matchers

from backend_api import (
    AuthenticationError,
    BackendClient,
    BackendError,
    NoPrayerTimesError,
    Section,
)

BASE_URL = "https://backend.test"


def record_payload(**overrides) -> dict:
    payload = {
        "id": 11,
        "day": 10,
        "month": 6,
        "fajr_first_time": "05:15",
        "fajr_second_time": "05:45",
        "sunrise_time": "06:45",
        "dhuhr_time": "12:15",
        "asr_time": "15:30",
        "maghrib_time": "17:45",
        "isha_time": "19:15",
        "section_id": 2,
        "name": "Tripoli",
    }
    payload.update(overrides)
    return payload


def test_list_sections_parses_cities():
    client = BackendClient(base_url=BASE_URL + "/")
    with responses.RequestsMock() as mock:
        mock.add(
            responses.GET,
            f"{BASE_URL}/sections/list",
            json={"sections": [{"id": 1, "name": "Tripoli"}, {"id": 2, "name": "Benghazi"}], "meta": {"total": 2}},
            match=[matchers.query_param_matcher({"per_page": "50"})],
        )
        page = client.list_sections(per_page=50)

    assert page.items == [Section(id=1, name="Tripoli"), Section(id=2, name="Benghazi")]
    assert page.meta == {"total": 2}


def test_fetch_today_prayer_time_returns_first_record():
    client = BackendClient(base_url=BASE_URL)
    with responses.RequestsMock() as mock:
        mock.add(
            responses.GET,
            f"{BASE_URL}/prayer-times/list",
            json={"prayer_times": [record_payload(), record_payload(id=12, day=11)], "meta": {}},
            match=[matchers.query_param_matcher({"q": "Tripoli"})],
        )
        record = client.fetch_today_prayer_time("Tripoli")

    assert record.id == 11
    assert record.isha_time == "19:15"
    assert record.name == "Tripoli"


def test_fetch_today_prayer_time_without_records_raises_not_found():
    client = BackendClient(base_url=BASE_URL)
    with responses.RequestsMock() as mock:
        mock.add(responses.GET, f"{BASE_URL}/prayer-times/list", json={"prayer_times": [], "meta": {}})
        with pytest.raises(NoPrayerTimesError):
            client.fetch_today_prayer_time("Nowhere")


def test_malformed_record_is_reported_as_backend_error():
    client = BackendClient(base_url=BASE_URL)
    broken = record_payload()
    del broken["isha_time"]
    with responses.RequestsMock() as mock:
        mock.add(responses.GET, f"{BASE_URL}/prayer-times/list", json={"prayer_times": [broken]})
        with pytest.raises(BackendError) as excinfo:
            client.fetch_today_prayer_time("Tripoli")
    assert not isinstance(excinfo.value, NoPrayerTimesError)


def test_server_error_carries_status_and_message():
    client = BackendClient(base_url=BASE_URL)
    with responses.RequestsMock() as mock:
        mock.add(responses.GET, f"{BASE_URL}/hadiths/list", json={"message": "boom"}, status=500)
        with pytest.raises(BackendError) as excinfo:
            client.list_hadiths()
    assert excinfo.value.status_code == 500
    assert str(excinfo.value) == "boom"


def test_connection_failure_becomes_backend_error():
    client = BackendClient(base_url=BASE_URL)
    with responses.RequestsMock() as mock:
        mock.add(responses.GET, f"{BASE_URL}/sections/list", body=requests.ConnectionError("offline"))
        with pytest.raises(BackendError):
            client.list_sections()


def test_special_topics_read_metadata_key():
    client = BackendClient(base_url=BASE_URL)
    with responses.RequestsMock() as mock:
        mock.add(
            responses.GET,
            f"{BASE_URL}/special-topics/topic",
            json={"specialTopics": [{"id": 1, "topic": "ramadan"}], "metadata": {"page": 1}},
            match=[matchers.query_param_matcher({"topic": "ramadan"})],
        )
        page = client.special_topics_by_topic("ramadan")
    assert page.items == [{"id": 1, "topic": "ramadan"}]
    assert page.meta == {"page": 1}


def test_login_stores_token_and_notifies():
    saved = []
    client = BackendClient(base_url=BASE_URL, on_token=saved.append)
    with responses.RequestsMock() as mock:
        mock.add(
            responses.POST,
            f"{BASE_URL}/login",
            json={"token": "abc", "expires": "2025-06-11T00:00:00Z"},
        )
        result = client.login("0910000000", "secret")

    assert result == {"token": "abc", "expires": "2025-06-11T00:00:00Z"}
    assert client.token == "abc"
    assert saved == ["abc"]


def test_login_without_token_is_rejected():
    client = BackendClient(base_url=BASE_URL)
    with responses.RequestsMock() as mock:
        mock.add(responses.POST, f"{BASE_URL}/login", json={"message": "ok"})
        with pytest.raises(AuthenticationError):
            client.login("0910000000", "secret")
    assert client.token is None


def test_admin_request_sends_bearer_and_rolls_token():
    saved = []
    client = BackendClient(base_url=BASE_URL, token="old", on_token=saved.append)
    with responses.RequestsMock() as mock:
        mock.add(
            responses.POST,
            f"{BASE_URL}/prayer-times",
            json={"message": "created", "token": "new"},
            match=[matchers.header_matcher({"Authorization": "Bearer old"})],
        )
        client.create_prayer_time("Tripoli", 10, 6, {"fajr_first_time": "05:15", "isha_time": "19:15"})
        body = mock.calls[0].request.body

    assert b'name="section"' in body
    assert b'name="fajr_first_time"' in body
    assert b"19:15" in body
    assert b'name="dhuhr_time"' not in body
    assert client.token == "new"
    assert saved == ["new"]


def test_update_prayer_time_identifies_record_by_query():
    client = BackendClient(base_url=BASE_URL, token="t")
    with responses.RequestsMock() as mock:
        mock.add(
            responses.PUT,
            f"{BASE_URL}/prayer-times",
            json={"message": "updated"},
            match=[matchers.query_param_matcher({"day": "10", "month": "6", "section": "Tripoli"})],
        )
        client.update_prayer_time("Tripoli", 10, 6, {"asr_time": "15:31"})


def test_delete_section_uses_query_id():
    client = BackendClient(base_url=BASE_URL, token="t")
    with responses.RequestsMock() as mock:
        mock.add(
            responses.DELETE,
            f"{BASE_URL}/sections",
            json={"message": "deleted"},
            match=[matchers.query_param_matcher({"id": "4"})],
        )
        client.delete_section(4)


def test_unauthorized_raises_authentication_error():
    client = BackendClient(base_url=BASE_URL, token="expired")
    with responses.RequestsMock() as mock:
        mock.add(responses.GET, f"{BASE_URL}/me", json={"message": "unauthorized"}, status=401)
        with pytest.raises(AuthenticationError) as excinfo:
            client.me()
    assert excinfo.value.status_code == 401


def test_subscribe_failure_is_not_raised():
    client = BackendClient(base_url=BASE_URL)
    with responses.RequestsMock() as mock:
        mock.add(responses.POST, f"{BASE_URL}/subscribe", json={"message": "nope"}, status=500)
        client.subscribe("push-token", 2)
        assert len(mock.calls) == 1
