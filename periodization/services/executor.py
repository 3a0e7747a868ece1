"""Applies a MutationPlan to a BlockStore and persists the candidate block.

Plan operations target pairwise disjoint blocks, so they are dispatched
concurrently in no particular order. The candidate is written only once every
plan operation has settled.

There is no transaction: when one plan operation fails, the ones that
succeeded stay applied and the candidate is not persisted. Callers must
re-read the subject's blocks after a StoreError.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable

from loguru import logger

from periodization.domain.errors import StoreError
from periodization.domain.models import Block, MutationPlan
from periodization.services.store import BlockStore


def _plan_operations(plan: MutationPlan, store: BlockStore) -> list[Awaitable]:
    operations: list[Awaitable] = [store.delete_block(block_id) for block_id in plan.deletes]
    operations.extend(
        store.update_block(patch.id, start=patch.start, duration=patch.duration)
        for patch in plan.updates
    )
    operations.extend(
        store.create_block(block.subject_id, block.start, block.duration, block.payload)
        for block in plan.creates
    )
    return operations


async def apply_plan(plan: MutationPlan, candidate: Block, store: BlockStore) -> Block:
    """Apply *plan*, then create or update *candidate*. Returns the stored candidate.

    Raises:
        StoreError: a plan operation failed (the candidate is not written), or
            the candidate itself could not be persisted.
    """
    operations = _plan_operations(plan, store)
    if operations:
        logger.debug(
            f"Dispatching {len(operations)} plan operation(s) for subject "
            f"{candidate.subject_id}: {plan.summary()}"
        )
        results = await asyncio.gather(*operations, return_exceptions=True)
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            logger.error(
                f"{len(failures)} of {len(operations)} plan operation(s) failed for "
                f"subject {candidate.subject_id}; candidate not persisted"
            )
            raise StoreError(
                f"{len(failures)} plan operation(s) failed", failures
            ) from failures[0]

    try:
        if candidate.id is not None:
            return await store.update_block(
                candidate.id,
                start=candidate.start,
                duration=candidate.duration,
                payload=candidate.payload,
            )
        return await store.create_block(
            candidate.subject_id, candidate.start, candidate.duration, candidate.payload
        )
    except StoreError:
        logger.error(f"Failed to persist candidate block for subject {candidate.subject_id}")
        raise
    except Exception as exc:
        logger.error(
            f"Failed to persist candidate block for subject {candidate.subject_id}: {exc}"
        )
        raise StoreError(f"Failed to persist candidate block: {exc}", [exc]) from exc
