"""Domain events emitted when a subject's blocks change."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field


class DomainEvent(BaseModel):
    """Base of every event about one subject's blocks."""

    subject_id: str
    block_id: str


class BlockCommitted(DomainEvent):
    """Fired when a candidate block is persisted (created or edited)."""

    start: date
    duration: int
    created: bool


class BlocksReconciled(DomainEvent):
    """Fired when existing blocks were trimmed, split or removed for a candidate."""

    deleted_ids: list[str] = Field(default_factory=list)
    updated_ids: list[str] = Field(default_factory=list)
    created_count: int = 0


class BlockDeleted(DomainEvent):
    """Fired when a block is deleted explicitly."""

