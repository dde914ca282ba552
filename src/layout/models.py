from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Mapping, Union

from .errors import InvalidEventError

SLOT_MINUTES = 30
SLOT_DURATION = timedelta(minutes=SLOT_MINUTES)
SLOTS_PER_DAY = 24 * 60 // SLOT_MINUTES

WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def day_key(day: date) -> str:
    """Calendar key used by the grid, ``day/month/year`` without padding."""

    return f"{day.day}/{day.month}/{day.year}"


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def parse_timestamp(value: Any, *, field_name: str = "timestamp") -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidEventError(f"Missing or non-string {field_name}: {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise InvalidEventError(f"Malformed {field_name}: {value!r}") from exc


@dataclass(frozen=True)
class Event:
    """A time-stamped item to lay out (a shift or a timed care task)."""

    start: datetime
    end: datetime
    label: str = ""

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "Event":
        start = parse_timestamp(payload.get("start"), field_name="start")
        end = parse_timestamp(payload.get("end"), field_name="end")
        label = payload.get("label")
        if label is None:
            label = payload.get("notes", "")
        return cls(start=start, end=end, label=str(label))


@dataclass(frozen=True)
class EventFragment:
    """The part of an event confined to one calendar day."""

    start: datetime
    end: datetime
    label: str
    day: date
    event_index: int
    fragment_index: int
    is_head: bool
    is_tail: bool

    @property
    def day_key(self) -> str:
        return day_key(self.day)

    @property
    def weekday(self) -> str:
        return weekday_name(self.day)

    @property
    def day_start(self) -> datetime:
        return datetime.combine(self.day, datetime.min.time(), tzinfo=self.start.tzinfo)


@dataclass(frozen=True)
class SlotOccupancy:
    """A fragment sitting in one 30-minute slot of its day.

    ``is_head``/``is_tail`` hold only when the fragment starts/ends exactly on
    this slot's boundary; ``is_first``/``is_last`` mark the first and last slot
    the fragment touches at all.
    """

    fragment: EventFragment
    slot_index: int
    label: str
    is_head: bool
    is_tail: bool
    is_first: bool
    is_last: bool


@dataclass(frozen=True)
class EventCell:
    label: str | None
    column: int
    event_index: int
    is_head: bool
    is_tail: bool
    is_first: bool
    is_last: bool
    event_starts: bool
    event_ends: bool
    max_concurrency: int
    day_max_concurrency: int

    kind = "event"


@dataclass(frozen=True)
class EmptyCell:
    width: int

    kind = "empty"


Cell = Union[EventCell, EmptyCell]
DayGrid = dict[str, tuple[Cell, ...]]
RenderGrid = dict[str, DayGrid]


@dataclass(frozen=True)
class RejectedEvent:
    """An input event that was excluded from the layout, with the reason."""

    event: Any
    reason: str


@dataclass
class ColumnAssignment:
    """Column per fragment, indexed by ``fragment_index``."""

    columns: list[int | None] = field(default_factory=list)

    def get(self, fragment: EventFragment) -> int | None:
        return self.columns[fragment.fragment_index]

    def assign(self, fragment: EventFragment, column: int) -> None:
        if self.columns[fragment.fragment_index] is not None:
            raise ValueError(f"Fragment {fragment.fragment_index} already has a column")
        self.columns[fragment.fragment_index] = column


@dataclass
class OverlapRecord:
    """Largest concurrency seen per fragment and per day."""

    max_concurrency: list[int] = field(default_factory=list)
    day_max: dict[str, int] = field(default_factory=dict)

    def raise_to(self, fragment: EventFragment, value: int) -> None:
        index = fragment.fragment_index
        if value > self.max_concurrency[index]:
            self.max_concurrency[index] = value

    def for_fragment(self, fragment: EventFragment) -> int:
        return self.max_concurrency[fragment.fragment_index]


@dataclass
class LayoutResult:
    fragments: list[EventFragment]
    columns: ColumnAssignment
    overlap: OverlapRecord
    grid: RenderGrid
    rejected: list[RejectedEvent] = field(default_factory=list)

    def fragments_for(self, event_index: int) -> list[EventFragment]:
        return [fragment for fragment in self.fragments if fragment.event_index == event_index]

    def column_for(self, event_index: int, day: date) -> int | None:
        for fragment in self.fragments_for(event_index):
            if fragment.day == day:
                return self.columns.get(fragment)
        return None

    def max_concurrency_for(self, event_index: int) -> int:
        values = [self.overlap.for_fragment(fragment) for fragment in self.fragments_for(event_index)]
        return max(values, default=0)
