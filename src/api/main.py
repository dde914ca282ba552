"""REST API for the calendar layout engine."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, List, Literal, Optional, Protocol

from fastapi import FastAPI, HTTPException, Query, status
from pydantic import BaseModel, Field

from ..integrations.care_records import CareRecordsClient, CareRecordsConfig, CareRecordsError
from ..layout.engine import LayoutSettings, layout_events
from ..layout.grid import week_rows
from ..layout.models import Cell, EmptyCell, Event, LayoutResult, RenderGrid
from ..layout.week import WeekWindow

logger = logging.getLogger(__name__)


class EventSource(Protocol):
    def load_events(self, person_id: str, start: datetime, end: datetime) -> List[Event]:
        ...


@dataclass
class _CalendarState:
    """Settings and collaborators shared by the request handlers."""

    settings: LayoutSettings
    event_source: Optional[EventSource] = None

    def layout(self, events: List[Event]) -> LayoutResult:
        return layout_events(
            events,
            max_days=self.settings.max_span_days,
            tz=self.settings.timezone,
        )


class EventPayload(BaseModel):
    """A single interval to lay out. Ordering is checked by the engine, not here."""

    start: datetime
    end: datetime
    label: str = ""

    def build_event(self) -> Event:
        return Event(start=self.start, end=self.end, label=self.label)


class LayoutRequest(BaseModel):
    events: List[EventPayload] = Field(default_factory=list)


class CellResponse(BaseModel):
    kind: Literal["event", "empty"]
    label: Optional[str] = None
    column: Optional[int] = None
    event_index: Optional[int] = None
    is_head: bool = False
    is_tail: bool = False
    is_first: bool = False
    is_last: bool = False
    event_starts: bool = False
    event_ends: bool = False
    max_concurrency: int
    day_max_concurrency: Optional[int] = None


class RejectedResponse(BaseModel):
    label: str
    start: Optional[datetime]
    end: Optional[datetime]
    reason: str


class LayoutResponse(BaseModel):
    days: Dict[str, Dict[str, List[CellResponse]]]
    day_max_concurrency: Dict[str, int]
    rejected: List[RejectedResponse]


class WeekResponse(BaseModel):
    reference: date
    monday: date
    days: List[date]
    day_keys: List[str]
    weekday_names: List[str]
    month: str
    year: int
    previous: date
    next: date


class WeekCalendarResponse(LayoutResponse):
    person_id: str
    week: WeekResponse


def _serialize_cell(cell: Cell) -> CellResponse:
    if isinstance(cell, EmptyCell):
        return CellResponse(kind="empty", max_concurrency=cell.width)
    return CellResponse(
        kind="event",
        label=cell.label,
        column=cell.column,
        event_index=cell.event_index,
        is_head=cell.is_head,
        is_tail=cell.is_tail,
        is_first=cell.is_first,
        is_last=cell.is_last,
        event_starts=cell.event_starts,
        event_ends=cell.event_ends,
        max_concurrency=cell.max_concurrency,
        day_max_concurrency=cell.day_max_concurrency,
    )


def _serialize_grid(grid: RenderGrid) -> Dict[str, Dict[str, List[CellResponse]]]:
    return {
        day: {slot: [_serialize_cell(cell) for cell in cells] for slot, cells in slots.items()}
        for day, slots in grid.items()
    }


def _serialize_rejected(result: LayoutResult) -> List[RejectedResponse]:
    rejected = []
    for item in result.rejected:
        event = item.event
        rejected.append(
            RejectedResponse(
                label=str(getattr(event, "label", "")),
                start=getattr(event, "start", None),
                end=getattr(event, "end", None),
                reason=item.reason,
            )
        )
    return rejected


def _serialize_week(window: WeekWindow) -> WeekResponse:
    return WeekResponse(
        reference=window.reference,
        monday=window.monday,
        days=window.days,
        day_keys=window.day_keys,
        weekday_names=window.weekday_names,
        month=window.month_name,
        year=window.year,
        previous=window.previous().reference,
        next=window.next().reference,
    )


def _default_event_source() -> Optional[EventSource]:
    if not os.environ.get("CARE_RECORDS_URL"):
        logger.info("CARE_RECORDS_URL is not set; person calendars are disabled")
        return None
    return CareRecordsClient(CareRecordsConfig.from_env())


def create_app(
    event_source: Optional[EventSource] = None,
    *,
    settings: Optional[LayoutSettings] = None,
) -> FastAPI:
    state = _CalendarState(
        settings=settings or LayoutSettings.from_env(),
        event_source=event_source if event_source is not None else _default_event_source(),
    )

    app = FastAPI(title="Care Calendar Layout API")

    @app.post("/api/layout", response_model=LayoutResponse)
    def layout(payload: LayoutRequest) -> LayoutResponse:
        result = state.layout([item.build_event() for item in payload.events])
        return LayoutResponse(
            days=_serialize_grid(result.grid),
            day_max_concurrency=dict(result.overlap.day_max),
            rejected=_serialize_rejected(result),
        )

    @app.get("/api/week", response_model=WeekResponse)
    def week(reference: Optional[date] = Query(default=None, alias="date")) -> WeekResponse:
        return _serialize_week(WeekWindow(reference or date.today()))

    @app.get("/api/people/{person_id}/calendar", response_model=WeekCalendarResponse)
    def person_calendar(
        person_id: str,
        reference: Optional[date] = Query(default=None, alias="date"),
    ) -> WeekCalendarResponse:
        if state.event_source is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="No event source is configured.",
            )
        window = WeekWindow(reference or date.today())
        start, end = window.bounds(state.settings.timezone)
        try:
            events = state.event_source.load_events(person_id, start, end)
        except CareRecordsError as exc:
            logger.error("Unable to load events for person %s: %s", person_id, exc)
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))

        result = state.layout(events)
        grid = week_rows(result.grid, window)
        return WeekCalendarResponse(
            person_id=person_id,
            week=_serialize_week(window),
            days=_serialize_grid(grid),
            day_max_concurrency={key: result.overlap.day_max.get(key, 0) for key in window.day_keys},
            rejected=_serialize_rejected(result),
        )

    return app


app = create_app()
