from __future__ import annotations

import logging
from typing import Dict, List

from .models import Cell, DayGrid, EmptyCell, EventCell, RenderGrid, SlotOccupancy
from .overlap import OverlapTracker
from .slots import slot_labels
from .week import WeekWindow

logger = logging.getLogger(__name__)


def build_grid(tracker: OverlapTracker) -> RenderGrid:
    """Build ``day_key -> slot label -> cells`` from a finished tracker.

    An occupied slot's row is as wide as the ``max_concurrency`` of the slot's
    first occupant. This is not always the day-wide maximum, so rows within one
    day can differ in width.
    """

    grid: RenderGrid = {}
    labels = slot_labels()
    for day in tracker.days():
        occupants = tracker.occupants(day)
        day_max = tracker.overlap.day_max.get(day, 0)
        day_grid: DayGrid = {}
        for label in labels:
            slot_occupants = occupants.get(label)
            if not slot_occupants:
                day_grid[label] = ()
                continue
            day_grid[label] = _build_row(tracker, slot_occupants, day_max)
        grid[day] = day_grid
    return grid


def _build_row(tracker: OverlapTracker, occupants: List[SlotOccupancy], day_max: int) -> tuple[Cell, ...]:
    anchor = occupants[0].fragment
    width = tracker.overlap.for_fragment(anchor)
    placed: Dict[int, EventCell] = {}
    for occupancy in occupants:
        fragment = occupancy.fragment
        column = tracker.columns.get(fragment)
        if column in placed:
            moved = max(placed) + 1
            logger.error(
                "Column %s of %s slot %s is taken twice; moving event %s to column %s",
                column,
                anchor.day_key,
                occupancy.label,
                fragment.event_index,
                moved,
            )
            column = moved
        placed[column] = EventCell(
            label=fragment.label if _shows_label(occupancy) else None,
            column=column,
            event_index=fragment.event_index,
            is_head=occupancy.is_head,
            is_tail=occupancy.is_tail,
            is_first=occupancy.is_first,
            is_last=occupancy.is_last,
            event_starts=fragment.is_head and occupancy.is_head,
            event_ends=fragment.is_tail and occupancy.is_tail,
            max_concurrency=tracker.overlap.for_fragment(fragment),
            day_max_concurrency=day_max,
        )

    widest = max(placed) + 1
    if widest > width:
        logger.debug(
            "Widening %s slot %s from %s to %s columns",
            anchor.day_key,
            occupants[0].label,
            width,
            widest,
        )
        width = widest
    return tuple(placed.get(column, EmptyCell(width=width)) for column in range(width))


def _shows_label(occupancy: SlotOccupancy) -> bool:
    # The head slot, when the start is aligned, is always the first slot; an
    # unaligned start has no head slot and still needs its label shown.
    return occupancy.is_first


def week_rows(grid: RenderGrid, window: WeekWindow) -> RenderGrid:
    """Project ``grid`` onto the seven days of ``window``.

    Days without events still get every slot, each with no cells.
    """

    empty_day = {label: () for label in slot_labels()}
    return {key: dict(grid.get(key, empty_day)) for key in window.day_keys}
