"""Entry point for proposing, committing, moving, resizing and deleting blocks.

A proposal is split in two steps: ``propose_block`` validates the candidate
and computes its preview without writing anything; ``Proposal.commit``
resolves conflicts against the subject's current blocks and persists.

The planner does not lock. Callers must not run two commits for the same
subject at the same time.
"""

from __future__ import annotations

from datetime import date

from loguru import logger

from periodization.core.config import Settings, get_settings
from periodization.domain.bus import EventBus
from periodization.domain.errors import BlockNotFoundError, ValidationError
from periodization.domain.events import BlockCommitted, BlockDeleted, BlocksReconciled
from periodization.domain.models import (
    Block,
    BlockPayload,
    Preview,
    ResizeEdge,
    WeekNote,
    WeekNoteDraft,
    YearCalendar,
)
from periodization.repos.memory import WeekNotesRepository
from periodization.services.executor import apply_plan
from periodization.services.orderer import describe, year_calendar
from periodization.services.resolver import resolve
from periodization.services.store import BlockStore
from periodization.services.weeks import WeekInput, add_weeks, week_start


class Proposal:
    """A validated candidate block with its preview, ready to be committed."""

    def __init__(self, planner: BlockPlanner, candidate: Block, preview: Preview) -> None:
        self._planner = planner
        self.candidate = candidate
        self.preview = preview

    async def commit(self) -> Block:
        return await self._planner.commit(self.candidate)


class BlockPlanner:
    def __init__(
        self,
        store: BlockStore,
        bus: EventBus | None = None,
        settings: Settings | None = None,
        notes_repo: WeekNotesRepository | None = None,
    ) -> None:
        self.store = store
        self.bus = bus
        self.settings = settings or get_settings()
        self.notes_repo = notes_repo if notes_repo is not None else WeekNotesRepository()

    async def list_blocks(self, subject_id: str) -> list[Block]:
        blocks = await self.store.list_blocks(subject_id)
        return sorted(blocks, key=lambda b: b.start)

    async def propose_block(
        self,
        subject_id: str,
        start: WeekInput,
        duration: int | None = None,
        payload: BlockPayload | None = None,
        editing_id: str | None = None,
    ) -> Proposal:
        """Validate a candidate block and preview it against the subject's blocks.

        A missing *duration* falls back to ``settings.default_block_duration``.

        Raises:
            ValidationError: invalid duration, start or missing tag.
            BlockNotFoundError: *editing_id* is not one of the subject's blocks.
        """
        if duration is None:
            duration = self.settings.default_block_duration
        payload = payload or BlockPayload()
        self._validate(duration, payload)
        candidate = Block(
            id=editing_id,
            subject_id=subject_id,
            start=week_start(start),
            duration=duration,
            payload=payload,
        )

        existing = await self.store.list_blocks(subject_id)
        if editing_id is not None and not any(b.id == editing_id for b in existing):
            raise BlockNotFoundError(editing_id)

        return Proposal(self, candidate, describe(existing, candidate))

    async def commit(self, candidate: Block) -> Block:
        """Resolve *candidate* against the subject's current blocks and persist it."""
        existing = await self.store.list_blocks(candidate.subject_id)
        plan = resolve(existing, candidate)
        block = await apply_plan(plan, candidate, self.store)

        logger.info(
            f"{'Updated' if candidate.id else 'Created'} block {block.id} for subject "
            f"{block.subject_id} [{block.start}, +{block.duration}w); {plan.summary()}"
        )
        if self.bus is not None:
            if not plan.is_empty:
                self.bus.publish(
                    BlocksReconciled(
                        subject_id=block.subject_id,
                        block_id=block.id,
                        deleted_ids=plan.deletes,
                        updated_ids=[patch.id for patch in plan.updates],
                        created_count=len(plan.creates),
                    )
                )
            self.bus.publish(
                BlockCommitted(
                    subject_id=block.subject_id,
                    block_id=block.id,
                    start=block.start,
                    duration=block.duration,
                    created=candidate.id is None,
                )
            )
        return block

    async def move_block(self, subject_id: str, block_id: str, weeks: int) -> Proposal:
        """Propose shifting a block by *weeks*, keeping its duration and payload."""
        block = await self._owned_block(subject_id, block_id)
        return await self.propose_block(
            subject_id,
            add_weeks(block.start, weeks),
            block.duration,
            block.payload,
            editing_id=block.id,
        )

    async def resize_block(
        self,
        subject_id: str,
        block_id: str,
        edge: ResizeEdge | str,
        weeks: int,
    ) -> Proposal:
        """Propose dragging one edge of a block by *weeks*.

        Dragging the end changes the duration only. Dragging the start moves
        the start and changes the duration the opposite way. The duration never
        drops below one week.
        """
        try:
            edge = ResizeEdge(edge)
        except ValueError as exc:
            raise ValidationError(f"Unknown resize edge: {edge!r}") from exc

        block = await self._owned_block(subject_id, block_id)
        if edge == ResizeEdge.END:
            start: date = block.start
            duration = max(1, block.duration + weeks)
        else:
            start = add_weeks(block.start, weeks)
            duration = max(1, block.duration - weeks)

        return await self.propose_block(
            subject_id, start, duration, block.payload, editing_id=block.id
        )

    async def delete_block(self, subject_id: str, block_id: str) -> None:
        await self._owned_block(subject_id, block_id)
        await self.store.delete_block(block_id)
        logger.info(f"Deleted block {block_id} for subject {subject_id}")
        if self.bus is not None:
            self.bus.publish(BlockDeleted(subject_id=subject_id, block_id=block_id))

    async def calendar(self, subject_id: str, year: int) -> YearCalendar:
        blocks = await self.list_blocks(subject_id)
        return year_calendar(
            subject_id, blocks, year, self.notes_repo.weeks_with_notes(subject_id)
        )

    # ------------------------------------------------------------------
    # Week notes
    # ------------------------------------------------------------------

    def get_week_notes(self, subject_id: str, week: WeekInput) -> list[WeekNote]:
        """Return the notes of the week containing *week*, in display order."""
        return self.notes_repo.get(subject_id, week_start(week))

    def save_week_notes(
        self,
        subject_id: str,
        week: WeekInput,
        drafts: list[WeekNoteDraft],
    ) -> list[WeekNote]:
        """Replace the notes of the week containing *week*.

        Blank notes are dropped. The remaining notes keep their relative order
        (drafts without an order go last) and are renumbered from 0.
        """
        monday = week_start(week)
        ranked = sorted(
            enumerate(drafts),
            key=lambda pair: (pair[1].order is None, pair[1].order or 0, pair[0]),
        )
        notes: list[WeekNote] = []
        for _, draft in ranked:
            content = draft.content.strip()
            if not content:
                continue
            note = WeekNote(content=content, order=len(notes))
            if draft.id:
                note.id = draft.id
            notes.append(note)

        self.notes_repo.replace(subject_id, monday, notes)
        logger.info(f"Saved {len(notes)} note(s) for subject {subject_id}, week of {monday}")
        return self.notes_repo.get(subject_id, monday)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _validate(self, duration: int, payload: BlockPayload) -> None:
        if isinstance(duration, bool) or not isinstance(duration, int):
            raise ValidationError(f"Duration must be a whole number of weeks, got {duration!r}")
        if duration < 1:
            raise ValidationError(f"Duration must be at least 1 week, got {duration}")
        if duration > self.settings.max_block_duration:
            raise ValidationError(
                f"Duration must be at most {self.settings.max_block_duration} weeks, got {duration}"
            )
        if self.settings.require_tag and not any(tag.strip() for tag in payload.tags):
            raise ValidationError("A block needs at least one tag")

    async def _owned_block(self, subject_id: str, block_id: str) -> Block:
        block = await self.store.get_block(block_id)
        if block.subject_id != subject_id:
            raise BlockNotFoundError(block_id)
        return block
