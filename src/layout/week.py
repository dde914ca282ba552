from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import List

from .models import MONTH_NAMES, WEEKDAY_NAMES, day_key

WEEK = timedelta(days=7)


def monday_of(day: date) -> date:
    if isinstance(day, datetime):
        day = day.date()
    return day - timedelta(days=day.weekday())


@dataclass(frozen=True)
class WeekWindow:
    """The Monday-anchored seven days around a reference date."""

    reference: date

    @property
    def monday(self) -> date:
        return monday_of(self.reference)

    @property
    def days(self) -> List[date]:
        return [self.monday + timedelta(days=offset) for offset in range(7)]

    @property
    def day_keys(self) -> List[str]:
        return [day_key(day) for day in self.days]

    @property
    def weekday_names(self) -> List[str]:
        return list(WEEKDAY_NAMES)

    @property
    def month_name(self) -> str:
        return MONTH_NAMES[self.monday.month - 1]

    @property
    def year(self) -> int:
        return self.monday.year

    def next(self) -> "WeekWindow":
        return WeekWindow(self.reference + WEEK)

    def previous(self) -> "WeekWindow":
        return WeekWindow(self.reference - WEEK)

    def contains(self, day: date) -> bool:
        if isinstance(day, datetime):
            day = day.date()
        return self.monday <= day < self.monday + WEEK

    def bounds(self, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
        start = datetime.combine(self.monday, datetime.min.time(), tzinfo=tz)
        return start, start + WEEK
