"""Domain models for the periodization block timeline."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from periodization.services.weeks import add_weeks, week_start


class ResizeEdge(StrEnum):
    START = "start"
    END = "end"


class HistoryEntryType(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    RECONCILED = "reconciled"
    DELETED = "deleted"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class BlockPayload(BaseModel):
    """Opaque block data. Carried through trims and splits unchanged."""

    name: str = ""
    tags: list[str] = Field(default_factory=list)


class Block(BaseModel):
    """One scheduled interval ``[start, start + duration)`` in whole weeks."""

    id: str | None = None
    subject_id: str
    start: date
    duration: int = Field(ge=1)
    payload: BlockPayload = Field(default_factory=BlockPayload)

    @field_validator("start")
    @classmethod
    def _monday_aligned(cls, value: date) -> date:
        return week_start(value)

    @property
    def end(self) -> date:
        """Exclusive end of the interval."""
        return add_weeks(self.start, self.duration)

    @property
    def last_week(self) -> date:
        return add_weeks(self.start, self.duration - 1)

    def overlaps(self, other: Block) -> bool:
        """Half-open overlap test. Blocks that only touch do not overlap."""
        return self.start < other.end and self.end > other.start


class BlockPatch(BaseModel):
    id: str
    start: date | None = None
    duration: int


class MutationPlan(BaseModel):
    """Structural changes that restore the non-overlap invariant."""

    deletes: list[str] = Field(default_factory=list)
    updates: list[BlockPatch] = Field(default_factory=list)
    creates: list[Block] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.deletes or self.updates or self.creates)

    def summary(self) -> str:
        return (
            f"{len(self.deletes)} delete(s), {len(self.updates)} update(s), "
            f"{len(self.creates)} create(s)"
        )


class Preview(BaseModel):
    """Display metadata for a candidate block. Advisory only."""

    block_number: int
    first_week_number: int
    last_week_number: int
    first_week_start: date
    last_week_start: date
    duration: int

    @computed_field
    @property
    def label(self) -> str:
        return f"S{self.first_week_number} → S{self.last_week_number} ({self.duration} sem)"


class WeekCell(BaseModel):
    index: int
    week_start: date
    week_number: int
    block_id: str | None = None
    has_notes: bool = False


class YearCalendar(BaseModel):
    subject_id: str
    year: int
    weeks: list[WeekCell]
    block_numbers: dict[str, int] = Field(default_factory=dict)


class WeekNote(BaseModel):
    """Free-text coaching note attached to one week of a subject's timeline."""

    id: str = Field(default_factory=_new_id)
    content: str
    order: int = 0


class HistoryEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    subject_id: str
    block_id: str | None = None
    timestamp: datetime = Field(default_factory=_utcnow)
    type: HistoryEntryType
    payload: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Request DTOs
# ---------------------------------------------------------------------------


class BlockDraft(BaseModel):
    """Body of the create and edit routes. Unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")

    start: date
    duration: int | None = None
    name: str = ""
    tags: list[str] = Field(default_factory=list)

    def to_payload(self) -> BlockPayload:
        return BlockPayload(name=self.name, tags=self.tags)


class PreviewRequest(BlockDraft):
    editing_id: str | None = None


class WeekNoteDraft(BaseModel):
    id: str | None = None
    content: str
    order: int | None = None


class WeekNotesRequest(BaseModel):
    notes: list[WeekNoteDraft] = Field(default_factory=list)


class MoveRequest(BaseModel):
    weeks: int


class ResizeRequest(BaseModel):
    edge: ResizeEdge
    weeks: int
