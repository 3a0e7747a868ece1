"""Week-aligned timeline helpers.

Every point on the timeline is the Monday of an ISO week. Interval math only
ever works on these normalized points, so comparisons are exact and adding
whole weeks commutes with normalization.
"""

from __future__ import annotations

from datetime import date, datetime

from dateutil.parser import isoparse
from dateutil.relativedelta import MO, relativedelta
from dateutil.rrule import WEEKLY, rrule

from periodization.domain.errors import ValidationError

WeekInput = date | datetime | str


def week_start(value: WeekInput) -> date:
    """Return the Monday of the ISO week containing *value*.

    Accepts a ``date``, a ``datetime`` (its date part is used) or an ISO-8601
    string such as ``"2026-03-05"``.
    """
    if isinstance(value, str):
        try:
            value = isoparse(value)
        except ValueError as exc:
            raise ValidationError(f"Invalid week date: {value!r}") from exc
    if isinstance(value, datetime):
        value = value.date()
    if not isinstance(value, date):
        raise ValidationError(f"Invalid week date: {value!r}")
    return value + relativedelta(weekday=MO(-1))


def add_weeks(point: WeekInput, weeks: int) -> date:
    return week_start(point) + relativedelta(weeks=weeks)


def weeks_between(start: WeekInput, end: WeekInput) -> int:
    """Whole number of weeks from *start* to *end* (negative if end is earlier)."""
    return (week_start(end) - week_start(start)).days // 7


def iso_week_number(point: WeekInput) -> int:
    """ISO 8601 week number: week 1 is the week containing 4 January."""
    return week_start(point).isocalendar()[1]


def first_week_of_year(year: int) -> date:
    return week_start(date(year, 1, 4))


def weeks_in_year(year: int) -> int:
    """Number of ISO weeks in *year* (52 or 53).

    28 December always falls in the last ISO week of its year.
    """
    return date(year, 12, 28).isocalendar()[1]


def year_weeks(year: int) -> list[date]:
    """Mondays of every ISO week of *year*, in order."""
    first = first_week_of_year(year)
    rule = rrule(
        WEEKLY,
        dtstart=datetime(first.year, first.month, first.day),
        count=weeks_in_year(year),
    )
    return [dt.date() for dt in rule]
