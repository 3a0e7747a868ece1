"""Display metadata for blocks: ordinal numbers, week labels, the year grid.

Nothing here is used to enforce the non-overlap invariant.
"""

from __future__ import annotations

from datetime import date

from periodization.domain.models import Block, Preview, WeekCell, YearCalendar
from periodization.services.weeks import iso_week_number, weeks_between, year_weeks


def describe(
    existing: list[Block],
    candidate: Block,
    exclude_id: str | None = None,
) -> Preview:
    """Preview where *candidate* would sit among *existing* blocks.

    ``block_number`` is 1-based; existing blocks sharing the candidate's start
    come first. The block being edited (*exclude_id*, defaulting to
    ``candidate.id``) is left out of the count.
    """
    if exclude_id is None:
        exclude_id = candidate.id
    before = sum(
        1
        for block in existing
        if block.start <= candidate.start
        and (exclude_id is None or block.id != exclude_id)
    )
    return Preview(
        block_number=before + 1,
        first_week_number=iso_week_number(candidate.start),
        last_week_number=iso_week_number(candidate.last_week),
        first_week_start=candidate.start,
        last_week_start=candidate.last_week,
        duration=candidate.duration,
    )


def block_numbers(blocks: list[Block]) -> dict[str, int]:
    """Map each persisted block id to its 1-based position by start."""
    ordered = sorted((b for b in blocks if b.id is not None), key=lambda b: b.start)
    return {block.id: index + 1 for index, block in enumerate(ordered)}


def year_calendar(
    subject_id: str,
    blocks: list[Block],
    year: int,
    noted_weeks: set[date] | None = None,
) -> YearCalendar:
    """Lay *blocks* out on the ISO weeks of *year*, one cell per week.

    Cells whose Monday is in *noted_weeks* are flagged with ``has_notes``.
    """
    noted_weeks = noted_weeks or set()
    weeks = year_weeks(year)
    cells = [
        WeekCell(
            index=i,
            week_start=monday,
            week_number=iso_week_number(monday),
            has_notes=monday in noted_weeks,
        )
        for i, monday in enumerate(weeks)
    ]
    for block in blocks:
        offset = weeks_between(weeks[0], block.start)
        for i in range(max(offset, 0), min(offset + block.duration, len(cells))):
            cells[i].block_id = block.id

    return YearCalendar(
        subject_id=subject_id,
        year=year,
        weeks=cells,
        block_numbers=block_numbers(blocks),
    )
