"""Error types raised while planning and persisting periodization blocks.

- ValidationError: the proposed block is rejected before any store call.
- ConflictPlanError: the resolver hit an invariant violation. Never expected
  in production; the overlap cases are exhaustive.
- StoreError: a plan operation or the final commit failed in the store.
  Operations that already succeeded are not rolled back.
"""

from __future__ import annotations


class PeriodizationError(Exception):
    """Base class for every error raised by the block engine."""


class ValidationError(PeriodizationError):
    """Raised when a proposed block is invalid (bad duration, missing tag...)."""


class ConflictPlanError(PeriodizationError):
    """Raised when conflict resolution meets a state it cannot reconcile."""


class StoreError(PeriodizationError):
    """Raised when the block store fails to apply an operation.

    Attributes:
        failures: The underlying exceptions, one per failed store operation.
    """

    def __init__(self, message: str, failures: list[BaseException] | None = None):
        self.failures = list(failures or [])
        super().__init__(message)


class BlockNotFoundError(StoreError):
    """Raised when a block id is unknown to the store (or owned by another subject)."""

    def __init__(self, block_id: str):
        self.block_id = block_id
        super().__init__(f"Block {block_id} not found")
