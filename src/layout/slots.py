from __future__ import annotations

import math
from datetime import date, datetime, tzinfo
from typing import List

from .models import SLOT_DURATION, SLOT_MINUTES, SLOTS_PER_DAY, EventFragment, SlotOccupancy


def slot_label(index: int) -> str:
    if not 0 <= index < SLOTS_PER_DAY:
        raise ValueError(f"Slot index {index} is outside 0..{SLOTS_PER_DAY - 1}")
    hour, half = divmod(index, 2)
    return f"{hour}:{'30' if half else '00'}"


def slot_labels() -> List[str]:
    return [slot_label(index) for index in range(SLOTS_PER_DAY)]


def slot_start(day: date, index: int, tz: tzinfo | None = None) -> datetime:
    midnight = datetime.combine(day, datetime.min.time(), tzinfo=tz)
    return midnight + index * SLOT_DURATION


def index_fragment(fragment: EventFragment) -> List[SlotOccupancy]:
    """Return the slots ``fragment`` occupies, in time order.

    Intervals are half-open: a fragment ending exactly on a slot boundary does
    not occupy the slot that starts there. A fragment starting at 9:15 touches
    the 9:00 slot first but has no head slot.
    """

    midnight = fragment.day_start
    start_minutes = (fragment.start - midnight).total_seconds() / 60
    end_minutes = (fragment.end - midnight).total_seconds() / 60
    first = int(start_minutes // SLOT_MINUTES)
    last = min(math.ceil(end_minutes / SLOT_MINUTES), SLOTS_PER_DAY) - 1

    occupancies: List[SlotOccupancy] = []
    for index in range(first, last + 1):
        begins = midnight + index * SLOT_DURATION
        occupancies.append(
            SlotOccupancy(
                fragment=fragment,
                slot_index=index,
                label=slot_label(index),
                is_head=fragment.start == begins,
                is_tail=fragment.end == begins + SLOT_DURATION,
                is_first=index == first,
                is_last=index == last,
            )
        )
    return occupancies
