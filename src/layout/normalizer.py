from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, time
from typing import Iterable, List

from .errors import InvalidEventError, SplitLimitExceededError
from .models import SLOT_DURATION, SLOTS_PER_DAY, Event, EventFragment, RejectedEvent

logger = logging.getLogger(__name__)

DEFAULT_MAX_SPAN_DAYS = 31


def validate_event(event: Event) -> None:
    """Raise ``InvalidEventError`` unless ``event`` is a usable interval."""

    if not isinstance(event.start, datetime) or not isinstance(event.end, datetime):
        raise InvalidEventError(f"Event {event.label!r} has non-datetime bounds")
    try:
        ordered = event.end > event.start
    except TypeError as exc:
        raise InvalidEventError(f"Event {event.label!r} mixes naive and aware timestamps") from exc
    if not ordered:
        raise InvalidEventError(
            f"Event {event.label!r} ends at {event.end.isoformat()} which is not after "
            f"its start {event.start.isoformat()}"
        )


def validate_events(events: Iterable[Event]) -> tuple[List[Event], List[RejectedEvent]]:
    """Split ``events`` into the usable ones and the rejected ones.

    All valid events must agree on whether they carry a timezone, since they are
    sorted against each other.
    """

    valid: List[Event] = []
    rejected: List[RejectedEvent] = []
    aware: bool | None = None
    for event in events:
        try:
            validate_event(event)
            event_aware = event.start.tzinfo is not None
            if aware is not None and event_aware != aware:
                raise InvalidEventError(
                    f"Event {event.label!r} mixes naive and aware timestamps with other events"
                )
        except InvalidEventError as exc:
            logger.warning("Skipping event %r: %s", getattr(event, "label", event), exc)
            rejected.append(RejectedEvent(event=event, reason=str(exc)))
            continue
        aware = event_aware
        valid.append(event)
    return valid, rejected


def split_event(
    event: Event,
    event_index: int,
    *,
    max_days: int = DEFAULT_MAX_SPAN_DAYS,
) -> List[EventFragment]:
    """Split ``event`` at local midnight into one fragment per calendar day.

    Returned fragments carry ``fragment_index=-1``; ``normalize_events`` numbers
    them once the whole sequence is known.
    """

    validate_event(event)
    pieces: List[tuple[datetime, datetime]] = []
    cursor = event.start
    while True:
        boundary = _day_boundary(cursor)
        if event.end <= boundary:
            pieces.append((cursor, event.end))
            break
        if len(pieces) + 1 >= max_days:
            raise SplitLimitExceededError(
                f"Event {event.label!r} spans more than {max_days} days "
                f"({event.start.isoformat()} - {event.end.isoformat()})"
            )
        pieces.append((cursor, boundary))
        cursor = boundary

    last = len(pieces) - 1
    return [
        EventFragment(
            start=start,
            end=end,
            label=event.label,
            day=start.date(),
            event_index=event_index,
            fragment_index=-1,
            is_head=position == 0,
            is_tail=position == last,
        )
        for position, (start, end) in enumerate(pieces)
    ]


def normalize_events(
    events: Iterable[Event],
    *,
    max_days: int = DEFAULT_MAX_SPAN_DAYS,
) -> tuple[List[EventFragment], List[RejectedEvent]]:
    """Sort events and expand them into day fragments ordered by start.

    Invalid events (bad interval, too many days) are logged and returned as
    rejected; the rest are still expanded. ``event_index`` counts only the
    events that made it. Both sorts are stable, so ties keep input order.
    """

    valid, rejected = validate_events(events)
    ordered = sorted(valid, key=lambda event: event.start)
    expanded: List[EventFragment] = []
    event_index = 0
    for event in ordered:
        try:
            fragments = split_event(event, event_index, max_days=max_days)
        except InvalidEventError as exc:
            logger.warning("Skipping event %r: %s", event.label, exc)
            rejected.append(RejectedEvent(event=event, reason=str(exc)))
            continue
        expanded.extend(fragments)
        event_index += 1

    return number_fragments(expanded), rejected


def number_fragments(fragments: Iterable[EventFragment]) -> List[EventFragment]:
    """Order fragments by start (stable) and give each its dense index."""

    ordered = sorted(fragments, key=lambda fragment: fragment.start)
    return [
        replace(fragment, fragment_index=fragment_index)
        for fragment_index, fragment in enumerate(ordered)
    ]


def _day_boundary(start: datetime) -> datetime:
    """Local midnight that closes ``start``'s day.

    The cursor walks forward in slot steps until the calendar day changes, then
    snaps back to midnight so fragments never straddle a day.
    """

    cursor = start
    for _ in range(SLOTS_PER_DAY):
        cursor = cursor + SLOT_DURATION
        if cursor.date() != start.date():
            return datetime.combine(cursor.date(), time.min, tzinfo=start.tzinfo)
    raise SplitLimitExceededError(  # pragma: no cover - a day has at most 48 slots
        f"Could not find the end of the day starting at {start.isoformat()}"
    )
