"""In-memory repositories for blocks and their change history."""

from __future__ import annotations

import asyncio
import uuid
from datetime import date

from periodization.domain.errors import BlockNotFoundError
from periodization.domain.models import Block, BlockPayload, HistoryEntry, WeekNote


class InMemoryBlockStore:
    """Dict-backed BlockStore, keyed by block id.

    Blocks are copied on the way in and out so callers never hold a reference
    to stored state. Every operation yields to the event loop once, so
    concurrently dispatched calls genuinely interleave.
    """

    def __init__(self) -> None:
        self._store: dict[str, Block] = {}

    async def list_blocks(self, subject_id: str) -> list[Block]:
        await asyncio.sleep(0)
        blocks = [b for b in self._store.values() if b.subject_id == subject_id]
        return [b.model_copy(deep=True) for b in sorted(blocks, key=lambda b: b.start)]

    async def get_block(self, block_id: str) -> Block:
        await asyncio.sleep(0)
        return self._get(block_id).model_copy(deep=True)

    async def create_block(
        self,
        subject_id: str,
        start: date,
        duration: int,
        payload: BlockPayload,
    ) -> Block:
        await asyncio.sleep(0)
        block = Block(
            id=str(uuid.uuid4()),
            subject_id=subject_id,
            start=start,
            duration=duration,
            payload=payload.model_copy(deep=True),
        )
        self._store[block.id] = block
        return block.model_copy(deep=True)

    async def update_block(
        self,
        block_id: str,
        *,
        duration: int,
        start: date | None = None,
        payload: BlockPayload | None = None,
    ) -> Block:
        await asyncio.sleep(0)
        current = self._get(block_id)
        updated = Block(
            id=current.id,
            subject_id=current.subject_id,
            start=start if start is not None else current.start,
            duration=duration,
            payload=(payload or current.payload).model_copy(deep=True),
        )
        self._store[block_id] = updated
        return updated.model_copy(deep=True)

    async def delete_block(self, block_id: str) -> None:
        await asyncio.sleep(0)
        self._get(block_id)
        del self._store[block_id]

    def _get(self, block_id: str) -> Block:
        block = self._store.get(block_id)
        if block is None:
            raise BlockNotFoundError(block_id)
        return block


class HistoryRepository:
    """List-backed store for HistoryEntry instances."""

    def __init__(self) -> None:
        self._entries: list[HistoryEntry] = []

    def add(self, entry: HistoryEntry) -> None:
        self._entries.append(entry)

    def list_for_subject(self, subject_id: str) -> list[HistoryEntry]:
        return sorted(
            [e for e in self._entries if e.subject_id == subject_id],
            key=lambda e: e.timestamp,
        )

    def list_for_block(self, block_id: str) -> list[HistoryEntry]:
        return sorted(
            [e for e in self._entries if e.block_id == block_id],
            key=lambda e: e.timestamp,
        )


class WeekNotesRepository:
    """Dict-backed store for week notes, keyed by (subject id, Monday of the week)."""

    def __init__(self) -> None:
        self._notes: dict[tuple[str, date], list[WeekNote]] = {}

    def get(self, subject_id: str, week: date) -> list[WeekNote]:
        notes = self._notes.get((subject_id, week), [])
        return [n.model_copy() for n in sorted(notes, key=lambda n: n.order)]

    def replace(self, subject_id: str, week: date, notes: list[WeekNote]) -> None:
        if notes:
            self._notes[(subject_id, week)] = [n.model_copy() for n in notes]
        else:
            self._notes.pop((subject_id, week), None)

    def weeks_with_notes(self, subject_id: str) -> set[date]:
        return {week for (sid, week) in self._notes if sid == subject_id}
