"""Domain event handlers that record each subject's block history."""

from __future__ import annotations

from periodization.domain.bus import EventBus
from periodization.domain.events import BlockCommitted, BlockDeleted, BlocksReconciled
from periodization.domain.models import HistoryEntry, HistoryEntryType
from periodization.repos.memory import HistoryRepository


class HistoryRecorder:
    """Wires history handlers to the bus."""

    def __init__(self, bus: EventBus, history_repo: HistoryRepository) -> None:
        self.bus = bus
        self.history_repo = history_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(BlockCommitted, self.on_block_committed)
        self.bus.subscribe(BlocksReconciled, self.on_blocks_reconciled)
        self.bus.subscribe(BlockDeleted, self.on_block_deleted)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_block_committed(self, event: BlockCommitted) -> None:
        self.history_repo.add(
            HistoryEntry(
                subject_id=event.subject_id,
                block_id=event.block_id,
                type=HistoryEntryType.CREATED if event.created else HistoryEntryType.UPDATED,
                payload={
                    "start": event.start.isoformat(),
                    "duration": event.duration,
                },
            )
        )

    def on_blocks_reconciled(self, event: BlocksReconciled) -> None:
        self.history_repo.add(
            HistoryEntry(
                subject_id=event.subject_id,
                block_id=event.block_id,
                type=HistoryEntryType.RECONCILED,
                payload={
                    "deleted_ids": event.deleted_ids,
                    "updated_ids": event.updated_ids,
                    "created_count": event.created_count,
                },
            )
        )

    def on_block_deleted(self, event: BlockDeleted) -> None:
        self.history_repo.add(
            HistoryEntry(
                subject_id=event.subject_id,
                block_id=event.block_id,
                type=HistoryEntryType.DELETED,
            )
        )
