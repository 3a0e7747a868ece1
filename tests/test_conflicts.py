"""Tests for overlap classification and conflict resolution."""

from __future__ import annotations

import random
from datetime import date

import pytest

from periodization.domain.errors import ConflictPlanError
from periodization.domain.models import Block, BlockPatch, BlockPayload, MutationPlan
from periodization.services.resolver import (
    FullCover,
    StrictContainment,
    TrimHead,
    TrimTail,
    classify,
    resolve,
)
from periodization.services.weeks import add_weeks, weeks_between

# Monday of ISO week 2, 2026. Week offsets below are relative to it.
_BASE = date(2026, 1, 5)


def _w(offset: int) -> date:
    return add_weeks(_BASE, offset)


def _block(
    start: int,
    duration: int,
    block_id: str | None = None,
    subject_id: str = "student-1",
    name: str = "Existing",
) -> Block:
    return Block(
        id=block_id,
        subject_id=subject_id,
        start=_w(start),
        duration=duration,
        payload=BlockPayload(name=name, tags=["force"]),
    )


# ---------------------------------------------------------------------------
# Overlap predicate
# ---------------------------------------------------------------------------


def test_overlap_is_half_open():
    """Blocks that only touch should not overlap."""
    a = _block(0, 4, "a")
    assert a.overlaps(_block(3, 2))
    assert not a.overlaps(_block(4, 2))  # touches at the boundary
    assert not _block(4, 2).overlaps(a)
    assert a.overlaps(_block(0, 4))


def test_block_start_is_normalized_to_monday():
    block = Block(subject_id="student-1", start=date(2026, 1, 8), duration=2)
    assert block.start == date(2026, 1, 5)
    assert block.end == date(2026, 1, 19)
    assert block.last_week == date(2026, 1, 12)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "existing,candidate,expected",
    [
        (_block(10, 2, "a"), _block(8, 10), FullCover),
        (_block(10, 1, "a"), _block(10, 1), FullCover),
        (_block(10, 10, "a"), _block(12, 3), StrictContainment),
        (_block(10, 4, "a"), _block(12, 4), TrimTail),
        (_block(10, 5, "a"), _block(5, 7), TrimHead),
        (_block(10, 5, "a"), _block(10, 2), TrimHead),
        (_block(10, 5, "a"), _block(12, 3), TrimTail),
    ],
)
def test_classify_cases(existing, candidate, expected):
    """Each overlap shape should map to its resolution case."""
    assert isinstance(classify(existing, candidate), expected)


def test_classify_returns_none_without_overlap():
    assert classify(_block(0, 4, "a"), _block(4, 4)) is None
    assert classify(_block(8, 4, "a"), _block(4, 4)) is None


# ---------------------------------------------------------------------------
# Concrete scenarios
# ---------------------------------------------------------------------------


def test_candidate_covering_block_deletes_it():
    """A fully covered block should be deleted."""
    plan = resolve([_block(10, 2, "a")], _block(8, 10))
    assert plan == MutationPlan(deletes=["a"])


def test_candidate_inside_block_splits_it():
    """A candidate strictly inside a block should split it in two."""
    existing = _block(10, 10, "a", name="Prépa Force")
    plan = resolve([existing], _block(12, 3))

    assert plan.deletes == []
    assert plan.updates == [BlockPatch(id="a", duration=2)]
    assert len(plan.creates) == 1
    tail = plan.creates[0]
    assert tail.id is None
    assert tail.start == _w(15)
    assert tail.duration == 5
    assert tail.payload == existing.payload


def test_tail_payload_is_a_copy():
    existing = _block(10, 10, "a")
    tail = resolve([existing], _block(12, 3)).creates[0]
    tail.payload.tags.append("mutated")
    assert existing.payload.tags == ["force"]


def test_candidate_over_block_end_trims_tail():
    """Overlapping the end of a block should shorten it."""
    plan = resolve([_block(10, 4, "a")], _block(12, 4))
    assert plan == MutationPlan(updates=[BlockPatch(id="a", duration=2)])


def test_candidate_over_block_start_trims_head():
    """Overlapping the start of a block should push its start back."""
    plan = resolve([_block(10, 5, "a")], _block(5, 7))
    assert plan == MutationPlan(updates=[BlockPatch(id="a", start=_w(12), duration=3)])


def test_exact_overlap_is_full_cover():
    plan = resolve([_block(10, 1, "a")], _block(10, 1))
    assert plan == MutationPlan(deletes=["a"])


def test_adjacent_blocks_are_left_alone():
    """Touching blocks should produce an empty plan."""
    existing = [_block(0, 4, "a"), _block(8, 2, "b")]
    plan = resolve(existing, _block(4, 4))
    assert plan.is_empty


def test_candidate_spanning_several_blocks():
    """One candidate can trim, delete and trim in a single plan."""
    existing = [
        _block(0, 4, "a"),
        _block(4, 4, "b"),
        _block(8, 4, "c"),
        _block(12, 4, "d"),
    ]
    plan = resolve(existing, _block(2, 11))

    assert plan.deletes == ["b", "c"]
    assert plan.updates == [
        BlockPatch(id="a", duration=2),
        BlockPatch(id="d", start=_w(13), duration=3),
    ]
    assert plan.creates == []


# ---------------------------------------------------------------------------
# Exclusion and scoping
# ---------------------------------------------------------------------------


def test_edited_block_is_not_compared_with_itself():
    """The block being edited should not be reconciled against itself."""
    existing = [_block(10, 4, "a"), _block(14, 4, "b")]
    moved = _block(12, 4, "a")
    plan = resolve(existing, moved)
    assert plan == MutationPlan(updates=[BlockPatch(id="b", start=_w(16), duration=2)])


def test_explicit_exclude_id():
    existing = [_block(10, 4, "a")]
    plan = resolve(existing, _block(10, 4), exclude_id="a")
    assert plan.is_empty


def test_blocks_of_other_subjects_are_ignored():
    existing = [_block(10, 4, "a", subject_id="student-2")]
    plan = resolve(existing, _block(10, 4))
    assert plan.is_empty


def test_resolve_is_deterministic():
    """Resolving the same input twice should give the same plan."""
    existing = [_block(0, 4, "a"), _block(4, 4, "b"), _block(9, 6, "c")]
    candidate = _block(2, 9)
    first = resolve(existing, candidate)
    second = resolve(list(reversed(existing)), candidate)
    assert first == second
    assert resolve(existing, candidate) == first


# ---------------------------------------------------------------------------
# Invariant violations
# ---------------------------------------------------------------------------


def test_overlapping_existing_blocks_raise():
    """Already overlapping stored blocks should be reported, not resolved."""
    existing = [_block(0, 6, "a"), _block(4, 4, "b")]
    with pytest.raises(ConflictPlanError):
        resolve(existing, _block(20, 2))


def test_duplicate_existing_ids_raise():
    existing = [_block(0, 2, "a"), _block(4, 2, "a")]
    with pytest.raises(ConflictPlanError):
        resolve(existing, _block(20, 2))


def test_existing_block_without_id_raises():
    with pytest.raises(ConflictPlanError):
        resolve([_block(0, 2)], _block(20, 2))


def test_overlap_only_through_edited_block_is_fine():
    # "a" overlaps "b" only in its old position, and "a" is being edited.
    existing = [_block(0, 6, "a"), _block(6, 4, "b")]
    plan = resolve(existing, _block(20, 2, "a"))
    assert plan.is_empty


# ---------------------------------------------------------------------------
# Properties over random timelines
# ---------------------------------------------------------------------------


def _apply(blocks: dict[str, Block], plan: MutationPlan, candidate: Block, counter: list[int]):
    for block_id in plan.deletes:
        del blocks[block_id]
    for patch in plan.updates:
        current = blocks[patch.id]
        blocks[patch.id] = current.model_copy(
            update={"start": patch.start or current.start, "duration": patch.duration}
        )
    for created in plan.creates + [candidate]:
        block_id = created.id
        if block_id is None:
            counter[0] += 1
            block_id = f"gen-{counter[0]}"
        blocks[block_id] = created.model_copy(update={"id": block_id})


def _weeks(block: Block) -> set[int]:
    first = weeks_between(_BASE, block.start)
    return set(range(first, first + block.duration))


def test_random_resolutions_keep_blocks_disjoint():
    """Applying any random plan should leave the timeline disjoint."""
    rng = random.Random(20260105)
    blocks: dict[str, Block] = {}
    counter = [0]

    for _ in range(300):
        editing = rng.random() < 0.3 and blocks
        block_id = rng.choice(sorted(blocks)) if editing else None
        candidate = _block(rng.randint(0, 40), rng.randint(1, 8), block_id, name=f"n{_}")

        before = {bid: b for bid, b in blocks.items() if bid != block_id}
        covered_before = set().union(*(_weeks(b) for b in before.values()))

        plan = resolve(list(blocks.values()), candidate)
        _apply(blocks, plan, candidate, counter)

        ordered = sorted(blocks.values(), key=lambda b: b.start)
        for previous, current in zip(ordered, ordered[1:]):
            assert not previous.overlaps(current)
        assert all(b.duration >= 1 for b in blocks.values())

        # Coverage: the union of the candidate and whatever it did not cover.
        covered_after = [w for b in blocks.values() for w in _weeks(b)]
        assert len(covered_after) == len(set(covered_after))
        assert set(covered_after) == covered_before | _weeks(candidate)
