"""Conflict resolution between a candidate block and a subject's existing blocks.

Every existing block that overlaps the candidate falls into exactly one of
four cases:

- FullCover: the candidate covers the whole block -> delete it.
- StrictContainment: the candidate sits strictly inside -> keep the head,
  create a tail carrying a copy of the payload (split).
- TrimTail: the candidate overlaps the end of the block -> shorten it.
- TrimHead: the candidate overlaps the start of the block -> move its start.

Blocks are evaluated independently against the original candidate. This is
only sound while existing blocks are pairwise disjoint, which is checked
before resolution.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from loguru import logger
from pydantic import BaseModel, Field

from periodization.domain.errors import ConflictPlanError
from periodization.domain.models import Block, BlockPatch, MutationPlan
from periodization.services.weeks import weeks_between


class FullCover(BaseModel):
    kind: Literal["full_cover"] = "full_cover"
    existing: Block

    def contribute(self, plan: MutationPlan, candidate: Block) -> None:
        plan.deletes.append(self.existing.id)


class StrictContainment(BaseModel):
    kind: Literal["strict_containment"] = "strict_containment"
    existing: Block

    def contribute(self, plan: MutationPlan, candidate: Block) -> None:
        existing = self.existing
        head = weeks_between(existing.start, candidate.start)
        tail = weeks_between(candidate.end, existing.end)
        if head > 0:
            plan.updates.append(BlockPatch(id=existing.id, duration=head))
        else:
            plan.deletes.append(existing.id)
        if tail > 0:
            plan.creates.append(
                Block(
                    subject_id=existing.subject_id,
                    start=candidate.end,
                    duration=tail,
                    payload=existing.payload.model_copy(deep=True),
                )
            )


class TrimTail(BaseModel):
    kind: Literal["trim_tail"] = "trim_tail"
    existing: Block

    def contribute(self, plan: MutationPlan, candidate: Block) -> None:
        remaining = weeks_between(self.existing.start, candidate.start)
        if remaining > 0:
            plan.updates.append(BlockPatch(id=self.existing.id, duration=remaining))
        else:
            plan.deletes.append(self.existing.id)


class TrimHead(BaseModel):
    kind: Literal["trim_head"] = "trim_head"
    existing: Block

    def contribute(self, plan: MutationPlan, candidate: Block) -> None:
        remaining = weeks_between(candidate.end, self.existing.end)
        if remaining > 0:
            plan.updates.append(
                BlockPatch(id=self.existing.id, start=candidate.end, duration=remaining)
            )
        else:
            plan.deletes.append(self.existing.id)


Overlap = Annotated[
    Union[FullCover, StrictContainment, TrimTail, TrimHead],
    Field(discriminator="kind"),
]


def classify(existing: Block, candidate: Block) -> Overlap | None:
    """Return the overlap case of *existing* against *candidate*, or None."""
    if not candidate.overlaps(existing):
        return None

    n_start, n_end = candidate.start, candidate.end
    e_start, e_end = existing.start, existing.end

    if n_start <= e_start and n_end >= e_end:
        return FullCover(existing=existing)
    if n_start > e_start and n_end < e_end:
        return StrictContainment(existing=existing)
    if e_start < n_start < e_end and n_end >= e_end:
        return TrimTail(existing=existing)
    if e_start < n_end < e_end and n_start <= e_start:
        return TrimHead(existing=existing)

    raise ConflictPlanError(
        f"Overlapping block {existing.id} [{e_start}, {e_end}) matched no case "
        f"against candidate [{n_start}, {n_end})"
    )


def _check_disjoint(blocks: list[Block]) -> None:
    seen: set[str] = set()
    for block in blocks:
        if block.id is None:
            raise ConflictPlanError("Existing block has no id")
        if block.id in seen:
            raise ConflictPlanError(f"Existing block {block.id} listed twice")
        seen.add(block.id)

    # Sorted by start, so an overlap always shows up between neighbours.
    for previous, current in zip(blocks, blocks[1:]):
        if previous.overlaps(current):
            raise ConflictPlanError(
                f"Existing blocks {previous.id} and {current.id} already overlap"
            )


def resolve(
    existing: list[Block],
    candidate: Block,
    exclude_id: str | None = None,
) -> MutationPlan:
    """Compute the mutations that make room for *candidate*.

    Pure and deterministic: nothing is written, and equal inputs always give
    equal plans. *exclude_id* (defaulting to ``candidate.id``) names the block
    being edited, which is never compared against itself. Blocks of other
    subjects are ignored.

    Raises:
        ConflictPlanError: the existing blocks already overlap each other, or
            an overlapping pair matched no case.
    """
    if exclude_id is None:
        exclude_id = candidate.id

    others = sorted(
        (
            block
            for block in existing
            if block.subject_id == candidate.subject_id
            and (exclude_id is None or block.id != exclude_id)
        ),
        key=lambda block: (block.start, block.id or ""),
    )
    _check_disjoint(others)

    plan = MutationPlan()
    for block in others:
        overlap = classify(block, candidate)
        if overlap is not None:
            overlap.contribute(plan, candidate)

    logger.debug(
        f"Resolved candidate {candidate.id or '<new>'} "
        f"[{candidate.start}, {candidate.end}) for subject {candidate.subject_id}: "
        f"{plan.summary()}"
    )
    return plan
