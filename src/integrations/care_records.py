from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Any, Callable, Mapping

import requests

from ..layout.errors import InvalidEventError
from ..layout.models import Event, parse_timestamp

logger = logging.getLogger(__name__)

SKIPPED_TASK_STATUSES = frozenset({"Cancelled", "Skipped"})


class CareRecordsError(Exception):
    """Raised when shifts or care tasks cannot be loaded from the data store."""


@dataclass(slots=True)
class CareRecordsConfig:
    """Where the care-records API lives and how to authenticate against it."""

    base_url: str
    access_token: str | None = None
    timeout: float = 30.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> "CareRecordsConfig":
        base_url = environ.get("CARE_RECORDS_URL")
        if not base_url:
            raise CareRecordsError("CARE_RECORDS_URL is not set")
        raw_timeout = environ.get("CARE_RECORDS_TIMEOUT")
        try:
            timeout = float(raw_timeout) if raw_timeout else 30.0
        except ValueError as exc:
            raise CareRecordsError(f"CARE_RECORDS_TIMEOUT must be a number, got {raw_timeout!r}") from exc
        return cls(
            base_url=base_url.rstrip("/"),
            access_token=environ.get("CARE_RECORDS_TOKEN") or None,
            timeout=timeout,
        )

    def url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def headers(self) -> dict[str, str]:
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}


Fetcher = Callable[[CareRecordsConfig, str, dict[str, Any]], Any]


class CareRecordsClient:
    """Reads shift allocations and care tasks for a person and maps them to events."""

    def __init__(
        self,
        config: CareRecordsConfig,
        *,
        fetcher: Fetcher | None = None,
        logger_instance: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self._fetcher = fetcher or _default_fetcher
        self._logger = logger_instance or logger

    def load_shifts(self, person_id: str, start: datetime, end: datetime) -> list[Event]:
        params = {"personId": person_id, "from": start.isoformat(), "to": end.isoformat()}
        payload = self._fetch("/api/shift-allocations", params)

        events: list[Event] = []
        for raw in payload:
            try:
                events.append(_shift_to_event(raw))
            except InvalidEventError as exc:
                self._logger.warning("Unable to parse shift %s: %s", _record_id(raw), exc)
        self._logger.info("Loaded %s shifts for person %s", len(events), person_id)
        return events

    def load_tasks(self, person_id: str, start: datetime, end: datetime) -> list[Event]:
        payload = self._fetch("/api/care-tasks", {"personId": person_id})

        events: list[Event] = []
        for raw in payload:
            if not isinstance(raw, Mapping):
                self._logger.warning("Unable to parse care task %r", raw)
                continue
            if raw.get("status") in SKIPPED_TASK_STATUSES:
                continue
            try:
                event = _task_to_event(raw)
            except InvalidEventError as exc:
                self._logger.warning("Unable to parse care task %s: %s", _record_id(raw), exc)
                continue
            if _overlaps(event, start, end):
                events.append(event)
        self._logger.info("Loaded %s care tasks for person %s", len(events), person_id)
        return events

    def load_events(self, person_id: str, start: datetime, end: datetime) -> list[Event]:
        return self.load_shifts(person_id, start, end) + self.load_tasks(person_id, start, end)

    def _fetch(self, path: str, params: dict[str, Any]) -> list[Any]:
        try:
            payload = self._fetcher(self.config, path, params)
        except CareRecordsError:
            raise
        except Exception as exc:
            self._logger.exception("Request to %s failed: %s", path, exc)
            raise CareRecordsError(f"Failed to load {path}") from exc
        if not isinstance(payload, list):
            raise CareRecordsError(f"Expected a list from {path}, got {type(payload).__name__}")
        return payload


def _shift_to_event(raw: Any) -> Event:
    if not isinstance(raw, Mapping):
        raise InvalidEventError(f"Shift record is not an object: {raw!r}")
    staff = raw.get("staff") or {}
    label = staff.get("name") if isinstance(staff, Mapping) else None
    label = label or "Unknown"
    notes = raw.get("notes")
    if notes:
        label = f"{label} ({notes})"
    return Event(
        start=parse_timestamp(raw.get("start"), field_name="start"),
        end=parse_timestamp(raw.get("end"), field_name="end"),
        label=label,
    )


def _task_to_event(raw: Mapping[str, Any]) -> Event:
    title = raw.get("title") or "Care task"
    if raw.get("scheduleType") == "Timed":
        return Event(
            start=parse_timestamp(raw.get("startAt"), field_name="startAt"),
            end=parse_timestamp(raw.get("endAt"), field_name="endAt"),
            label=title,
        )
    due = parse_timestamp(raw.get("dueDate"), field_name="dueDate")
    day_start = datetime.combine(due.date(), time.min, tzinfo=due.tzinfo)
    return Event(start=day_start, end=day_start + timedelta(days=1), label=title)


def _overlaps(event: Event, start: datetime, end: datetime) -> bool:
    if (event.start.tzinfo is None) != (start.tzinfo is None):
        # Naive task dates against an aware window (or the reverse): compare wall clocks.
        start, end = start.replace(tzinfo=None), end.replace(tzinfo=None)
        event = Event(event.start.replace(tzinfo=None), event.end.replace(tzinfo=None), event.label)
    return event.start < end and event.end > start


def _record_id(raw: Any) -> str:
    if isinstance(raw, Mapping):
        return str(raw.get("_id") or raw.get("id") or "<unknown>")
    return repr(raw)


def _default_fetcher(config: CareRecordsConfig, path: str, params: dict[str, Any]) -> Any:  # pragma: no cover - network path
    response = requests.get(config.url(path), params=params, headers=config.headers(), timeout=config.timeout)
    response.raise_for_status()
    return response.json()
