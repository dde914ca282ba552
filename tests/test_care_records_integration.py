from __future__ import annotations

from datetime import datetime
from typing import Any

import pytest
import requests

from src.integrations.care_records import (
    CareRecordsClient,
    CareRecordsConfig,
    CareRecordsError,
)
from src.layout.models import Event

WEEK_START = datetime(2025, 10, 6)
WEEK_END = datetime(2025, 10, 13)

SHIFTS = [
    {
        "_id": "s1",
        "start": "2025-10-06T09:00:00",
        "end": "2025-10-06T17:00:00",
        "staff": {"id": "u1", "name": "Ana"},
        "notes": "",
    },
    {
        "_id": "s2",
        "start": "2025-10-06T16:00:00",
        "end": "2025-10-07T01:00:00",
        "staff": None,
        "notes": "overnight",
    },
    {"_id": "s3", "start": "garbage", "end": "2025-10-07T01:00:00", "staff": {"name": "Bo"}},
]

TASKS = [
    {
        "_id": "t1",
        "title": "Medication",
        "scheduleType": "Timed",
        "startAt": "2025-10-07T08:00:00",
        "endAt": "2025-10-07T08:30:00",
        "status": "Scheduled",
    },
    {"_id": "t2", "title": "Laundry", "scheduleType": "AllDay", "dueDate": "2025-10-08T00:00:00", "status": "Completed"},
    {"_id": "t3", "title": "Cancelled visit", "scheduleType": "AllDay", "dueDate": "2025-10-08T00:00:00", "status": "Cancelled"},
    {"_id": "t4", "title": "Next month", "scheduleType": "AllDay", "dueDate": "2025-11-01T00:00:00", "status": "Scheduled"},
    {"_id": "t5", "title": "Broken", "scheduleType": "Timed", "endAt": "2025-10-07T08:30:00", "status": "Scheduled"},
]


class FakeFetcher:
    def __init__(self, responses: dict[str, Any]) -> None:
        self.responses = responses
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, config: CareRecordsConfig, path: str, params: dict[str, Any]) -> Any:
        self.calls.append((path, params))
        response = self.responses[path]
        if isinstance(response, Exception):
            raise response
        return response


def _client(fetcher: FakeFetcher) -> CareRecordsClient:
    return CareRecordsClient(CareRecordsConfig(base_url="https://care.example"), fetcher=fetcher)


def test_load_shifts_maps_staff_and_notes_to_labels():
    fetcher = FakeFetcher({"/api/shift-allocations": SHIFTS})

    events = _client(fetcher).load_shifts("p1", WEEK_START, WEEK_END)

    assert events == [
        Event(datetime(2025, 10, 6, 9), datetime(2025, 10, 6, 17), "Ana"),
        Event(datetime(2025, 10, 6, 16), datetime(2025, 10, 7, 1), "Unknown (overnight)"),
    ]
    path, params = fetcher.calls[0]
    assert path == "/api/shift-allocations"
    assert params == {"personId": "p1", "from": "2025-10-06T00:00:00", "to": "2025-10-13T00:00:00"}


def test_load_tasks_filters_status_window_and_malformed_records():
    fetcher = FakeFetcher({"/api/care-tasks": TASKS})

    events = _client(fetcher).load_tasks("p1", WEEK_START, WEEK_END)

    assert events == [
        Event(datetime(2025, 10, 7, 8), datetime(2025, 10, 7, 8, 30), "Medication"),
        Event(datetime(2025, 10, 8), datetime(2025, 10, 9), "Laundry"),
    ]
    assert fetcher.calls == [("/api/care-tasks", {"personId": "p1"})]


def test_load_events_combines_shifts_and_tasks():
    fetcher = FakeFetcher({"/api/shift-allocations": SHIFTS, "/api/care-tasks": TASKS})

    events = _client(fetcher).load_events("p1", WEEK_START, WEEK_END)

    assert [event.label for event in events] == ["Ana", "Unknown (overnight)", "Medication", "Laundry"]


def test_transport_failures_raise_care_records_error():
    fetcher = FakeFetcher({"/api/shift-allocations": requests.ConnectionError("down")})

    with pytest.raises(CareRecordsError):
        _client(fetcher).load_shifts("p1", WEEK_START, WEEK_END)


def test_unexpected_payload_shape_is_an_error():
    fetcher = FakeFetcher({"/api/care-tasks": {"error": "NOT_LINKED"}})

    with pytest.raises(CareRecordsError):
        _client(fetcher).load_tasks("p1", WEEK_START, WEEK_END)


def test_config_from_env():
    config = CareRecordsConfig.from_env(
        {"CARE_RECORDS_URL": "https://care.example/", "CARE_RECORDS_TOKEN": "jwt", "CARE_RECORDS_TIMEOUT": "5"}
    )

    assert config.url("/api/care-tasks") == "https://care.example/api/care-tasks"
    assert config.headers() == {"Authorization": "Bearer jwt"}
    assert config.timeout == 5.0
    assert CareRecordsConfig(base_url="https://care.example").headers() == {}


@pytest.mark.parametrize(
    "environ",
    [{}, {"CARE_RECORDS_URL": "https://care.example", "CARE_RECORDS_TIMEOUT": "soon"}],
)
def test_config_from_env_rejects_bad_settings(environ):
    with pytest.raises(CareRecordsError):
        CareRecordsConfig.from_env(environ)
