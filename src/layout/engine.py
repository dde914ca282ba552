from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Iterable, List, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .grid import build_grid
from .models import Event, LayoutResult, RejectedEvent
from .normalizer import DEFAULT_MAX_SPAN_DAYS, normalize_events
from .overlap import track_overlaps

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayoutSettings:
    """Knobs for the layout engine."""

    max_span_days: int = DEFAULT_MAX_SPAN_DAYS
    timezone: Optional[tzinfo] = None

    def __post_init__(self) -> None:
        if self.max_span_days <= 0:
            raise ValueError("max_span_days must be positive")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> "LayoutSettings":
        raw_days = environ.get("LAYOUT_MAX_SPAN_DAYS")
        raw_zone = environ.get("LAYOUT_TIMEZONE")
        try:
            max_span_days = int(raw_days) if raw_days else DEFAULT_MAX_SPAN_DAYS
        except ValueError as exc:
            raise ValueError(f"LAYOUT_MAX_SPAN_DAYS must be an integer, got {raw_days!r}") from exc
        zone: Optional[tzinfo] = None
        if raw_zone:
            try:
                zone = ZoneInfo(raw_zone)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise ValueError(f"Unknown LAYOUT_TIMEZONE {raw_zone!r}") from exc
        return cls(max_span_days=max_span_days, timezone=zone)


def to_local(value: datetime, tz: tzinfo | None = None) -> datetime:
    """Wall-clock time of ``value``; aware values are converted first."""

    if value.tzinfo is None:
        return value
    return value.astimezone(tz).replace(tzinfo=None)


def layout_events(
    events: Iterable[Event],
    *,
    max_days: int = DEFAULT_MAX_SPAN_DAYS,
    tz: tzinfo | None = None,
) -> LayoutResult:
    """Lay out ``events`` on a per-day grid of 30-minute slots.

    Bad events are skipped, logged and returned in ``LayoutResult.rejected``;
    the remaining events are laid out as usual.
    """

    originals: dict[int, Event] = {}
    local_events: List[Event] = []
    for event in events:
        local = event
        if isinstance(event.start, datetime) and isinstance(event.end, datetime):
            local = Event(start=to_local(event.start, tz), end=to_local(event.end, tz), label=event.label)
        originals[id(local)] = event
        local_events.append(local)

    fragments, invalid = normalize_events(local_events, max_days=max_days)
    rejected = [RejectedEvent(event=originals[id(item.event)], reason=item.reason) for item in invalid]
    tracker = track_overlaps(fragments)
    grid = build_grid(tracker)
    logger.debug(
        "Laid out %s events as %s fragments over %s days (%s rejected)",
        len({fragment.event_index for fragment in fragments}),
        len(fragments),
        len(grid),
        len(rejected),
    )
    return LayoutResult(
        fragments=fragments,
        columns=tracker.columns,
        overlap=tracker.overlap,
        grid=grid,
        rejected=rejected,
    )
