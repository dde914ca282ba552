from datetime import date, datetime

import pytest

from src.layout.models import Event
from src.layout.normalizer import normalize_events
from src.layout.slots import index_fragment, slot_label, slot_labels, slot_start


def _fragment(start: datetime, end: datetime):
    (fragment,), _ = normalize_events([Event(start, end, "slot test")])
    return fragment


def test_slot_labels_cover_the_day():
    labels = slot_labels()

    assert len(labels) == 48
    assert labels[:3] == ["0:00", "0:30", "1:00"]
    assert labels[-1] == "23:30"
    assert slot_label(19) == "9:30"


def test_slot_label_rejects_out_of_range_index():
    with pytest.raises(ValueError):
        slot_label(48)


def test_slot_start():
    assert slot_start(date(2025, 10, 6), 21) == datetime(2025, 10, 6, 10, 30)


def test_end_on_a_boundary_does_not_occupy_the_next_slot():
    occupancies = index_fragment(_fragment(datetime(2025, 10, 6, 9), datetime(2025, 10, 6, 10)))

    assert [o.label for o in occupancies] == ["9:00", "9:30"]
    assert [o.is_head for o in occupancies] == [True, False]
    assert [o.is_tail for o in occupancies] == [False, True]


def test_unaligned_fragment_touches_every_partial_slot():
    occupancies = index_fragment(_fragment(datetime(2025, 10, 6, 9, 10), datetime(2025, 10, 6, 9, 40)))

    assert [o.label for o in occupancies] == ["9:00", "9:30"]


def test_single_slot_fragment_is_head_and_tail():
    (occupancy,) = index_fragment(_fragment(datetime(2025, 10, 6, 11), datetime(2025, 10, 6, 11, 30)))

    assert occupancy.label == "11:00"
    assert occupancy.is_head and occupancy.is_tail


def test_fragment_ending_at_midnight_stops_at_last_slot():
    occupancies = index_fragment(_fragment(datetime(2025, 10, 6, 22, 30), datetime(2025, 10, 7, 0)))

    assert [o.label for o in occupancies] == ["22:30", "23:00", "23:30"]
    assert occupancies[-1].slot_index == 47


def test_unaligned_fragment_has_no_head_or_tail_slot():
    occupancies = index_fragment(_fragment(datetime(2025, 10, 6, 9, 15), datetime(2025, 10, 6, 10, 15)))

    assert [o.label for o in occupancies] == ["9:00", "9:30", "10:00"]
    assert [o.is_head for o in occupancies] == [False, False, False]
    assert [o.is_tail for o in occupancies] == [False, False, False]
    assert [o.is_first for o in occupancies] == [True, False, False]
    assert [o.is_last for o in occupancies] == [False, False, True]
