from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Sequence

from .models import ColumnAssignment, EventFragment, OverlapRecord, SlotOccupancy
from .slots import index_fragment

logger = logging.getLogger(__name__)


class OverlapTracker:
    """Greedy column assignment over slots, in fragment arrival order.

    A fragment landing in an empty slot takes column 0 (if it has none yet). A
    fragment joining an occupied slot takes the column of the occupant right before
    it plus one. This is first-fit by arrival, not a minimum colouring, and the
    grid depends on exactly this policy.
    """

    def __init__(self, fragments: Sequence[EventFragment]) -> None:
        self.fragments = list(fragments)
        self.columns = ColumnAssignment(columns=[None] * len(self.fragments))
        self.overlap = OverlapRecord(max_concurrency=[0] * len(self.fragments))
        self._slots: Dict[str, Dict[str, List[SlotOccupancy]]] = {}

    def add(self, occupancy: SlotOccupancy) -> None:
        fragment = occupancy.fragment
        day_slots = self._slots.setdefault(fragment.day_key, {})
        occupants = day_slots.get(occupancy.label)

        if not occupants:
            day_slots[occupancy.label] = [occupancy]
            if self.columns.get(fragment) is None:
                self.columns.assign(fragment, 0)
            self.overlap.raise_to(fragment, 1)
        else:
            occupants.append(occupancy)
            if self.columns.get(fragment) is None:
                previous = occupants[-2].fragment
                self.columns.assign(fragment, self.columns.get(previous) + 1)
            for occupant in occupants:
                self.overlap.raise_to(occupant.fragment, len(occupants))

        day_max = self.overlap.day_max.get(fragment.day_key, 0)
        self.overlap.day_max[fragment.day_key] = max(day_max, self.overlap.for_fragment(fragment))

    def add_fragment(self, fragment: EventFragment) -> None:
        for occupancy in index_fragment(fragment):
            self.add(occupancy)

    def days(self) -> List[str]:
        return list(self._slots)

    def occupants(self, day_key: str) -> Dict[str, List[SlotOccupancy]]:
        return self._slots.get(day_key, {})


def track_overlaps(fragments: Iterable[EventFragment]) -> OverlapTracker:
    """Index every fragment into its slots and record columns and concurrency."""

    fragments = list(fragments)
    tracker = OverlapTracker(fragments)
    for fragment in fragments:
        tracker.add_fragment(fragment)
    logger.debug(
        "Tracked %s fragments across %s days (max concurrency %s)",
        len(fragments),
        len(tracker.days()),
        max(tracker.overlap.day_max.values(), default=0),
    )
    return tracker
