"""The persistence collaborator the block engine writes through."""

from __future__ import annotations

from datetime import date
from typing import Protocol

from periodization.domain.models import Block, BlockPayload


class BlockStore(Protocol):
    """Async store of blocks, keyed by id and grouped by subject.

    Implementations raise ``BlockNotFoundError`` for unknown ids and may raise
    any other exception on failure; the executor turns those into
    ``StoreError``.
    """

    async def list_blocks(self, subject_id: str) -> list[Block]: ...

    async def get_block(self, block_id: str) -> Block: ...

    async def create_block(
        self,
        subject_id: str,
        start: date,
        duration: int,
        payload: BlockPayload,
    ) -> Block: ...

    async def update_block(
        self,
        block_id: str,
        *,
        duration: int,
        start: date | None = None,
        payload: BlockPayload | None = None,
    ) -> Block: ...

    async def delete_block(self, block_id: str) -> None: ...
