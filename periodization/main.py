"""FastAPI application: entry point for the periodization block service."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from datetime import date

from fastapi import FastAPI, Path, Request
from fastapi.responses import JSONResponse
from loguru import logger

from periodization.core.config import get_settings
from periodization.core.logger import setup_logger
from periodization.domain.bus import EventBus
from periodization.domain.errors import (
    BlockNotFoundError,
    ConflictPlanError,
    StoreError,
    ValidationError,
)
from periodization.domain.handlers import HistoryRecorder
from periodization.domain.models import (
    Block,
    BlockDraft,
    HistoryEntry,
    MoveRequest,
    Preview,
    PreviewRequest,
    ResizeRequest,
    WeekNote,
    WeekNotesRequest,
    YearCalendar,
)
from periodization.repos.memory import (
    HistoryRepository,
    InMemoryBlockStore,
    WeekNotesRepository,
)
from periodization.services.planner import BlockPlanner

settings = get_settings()
setup_logger(level=settings.log_level, log_file=settings.log_file)

app = FastAPI(title=settings.app_title)

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
block_store = InMemoryBlockStore()
history_repo = HistoryRepository()
week_notes_repo = WeekNotesRepository()
history_recorder = HistoryRecorder(bus=event_bus, history_repo=history_repo)
planner = BlockPlanner(
    store=block_store, bus=event_bus, settings=settings, notes_repo=week_notes_repo
)

# One resolution in flight per subject. Locks are never evicted, so this
# holds one entry per subject seen for the lifetime of the process.
subject_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)


# ── Error mapping ─────────────────────────────────────────────────────


@app.exception_handler(ValidationError)
async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(BlockNotFoundError)
async def _not_found(request: Request, exc: BlockNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(StoreError)
async def _store_error(request: Request, exc: StoreError) -> JSONResponse:
    logger.error(f"Store failure on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=502,
        content={"detail": str(exc), "failures": [str(f) for f in exc.failures]},
    )


@app.exception_handler(ConflictPlanError)
async def _conflict_plan_error(request: Request, exc: ConflictPlanError) -> JSONResponse:
    logger.error(f"Conflict resolution failed on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# ── Routes ────────────────────────────────────────────────────────────


@app.get("/subjects/{subject_id}/blocks", response_model=list[Block])
async def list_blocks(subject_id: str) -> list[Block]:
    """Return the subject's blocks ordered by start week."""
    return await planner.list_blocks(subject_id)


@app.post("/subjects/{subject_id}/blocks/preview", response_model=Preview)
async def preview_block(subject_id: str, draft: PreviewRequest) -> Preview:
    """Preview a block without writing anything."""
    proposal = await planner.propose_block(
        subject_id, draft.start, draft.duration, draft.to_payload(), draft.editing_id
    )
    return proposal.preview


@app.post("/subjects/{subject_id}/blocks", response_model=Block, status_code=201)
async def create_block(subject_id: str, draft: BlockDraft) -> Block:
    """Create a block, trimming, splitting or removing the blocks it overlaps."""
    async with subject_locks[subject_id]:
        proposal = await planner.propose_block(
            subject_id, draft.start, draft.duration, draft.to_payload()
        )
        return await proposal.commit()


@app.put("/subjects/{subject_id}/blocks/{block_id}", response_model=Block)
async def edit_block(subject_id: str, block_id: str, draft: BlockDraft) -> Block:
    """Replace a block's start, duration and payload."""
    async with subject_locks[subject_id]:
        proposal = await planner.propose_block(
            subject_id, draft.start, draft.duration, draft.to_payload(), block_id
        )
        return await proposal.commit()


@app.post("/subjects/{subject_id}/blocks/{block_id}/move", response_model=Block)
async def move_block(subject_id: str, block_id: str, body: MoveRequest) -> Block:
    async with subject_locks[subject_id]:
        proposal = await planner.move_block(subject_id, block_id, body.weeks)
        return await proposal.commit()


@app.post("/subjects/{subject_id}/blocks/{block_id}/resize", response_model=Block)
async def resize_block(subject_id: str, block_id: str, body: ResizeRequest) -> Block:
    async with subject_locks[subject_id]:
        proposal = await planner.resize_block(subject_id, block_id, body.edge, body.weeks)
        return await proposal.commit()


@app.delete("/subjects/{subject_id}/blocks/{block_id}", status_code=200)
async def delete_block(subject_id: str, block_id: str) -> dict:
    async with subject_locks[subject_id]:
        await planner.delete_block(subject_id, block_id)
    return {"status": "deleted"}


@app.get("/subjects/{subject_id}/calendar/{year}", response_model=YearCalendar)
async def get_calendar(subject_id: str, year: int = Path(ge=1, le=9999)) -> YearCalendar:
    """Return one cell per ISO week of *year* with the block covering it."""
    return await planner.calendar(subject_id, year)


@app.get("/subjects/{subject_id}/history", response_model=list[HistoryEntry])
async def get_history(subject_id: str) -> list[HistoryEntry]:
    return history_repo.list_for_subject(subject_id)


@app.get("/subjects/{subject_id}/weeks/{week}/notes", response_model=list[WeekNote])
async def get_week_notes(subject_id: str, week: date) -> list[WeekNote]:
    """Return the notes of the week containing *week*."""
    return planner.get_week_notes(subject_id, week)


@app.put("/subjects/{subject_id}/weeks/{week}/notes", response_model=list[WeekNote])
async def save_week_notes(subject_id: str, week: date, body: WeekNotesRequest) -> list[WeekNote]:
    """Replace the notes of the week containing *week*. Blank notes are dropped."""
    return planner.save_week_notes(subject_id, week, body.notes)
