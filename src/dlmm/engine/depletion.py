"""Module E: Depletion Policy - Freeze the active bin when trading would leave the range.

States: IN_RANGE, FROZEN_ABOVE, FROZEN_BELOW.

With force_bin_depletion enabled:
- in range, next in range: move
- in range, next out of range: do not move, freeze in the direction of travel,
  and still update volatility for the attempted crossing
- frozen: unfreeze and move only when the next id falls back inside the range;
  frozen no-op events do not touch volatility
- out of range with no recorded direction: infer it and freeze without moving
"""

from dataclasses import dataclass
from enum import Enum


class FreezeState(str, Enum):
    """Tri-state freeze flag of the active bin."""
    IN_RANGE = "in_range"
    FROZEN_ABOVE = "frozen_above"
    FROZEN_BELOW = "frozen_below"

    @property
    def is_frozen(self) -> bool:
        return self is not FreezeState.IN_RANGE


@dataclass(frozen=True)
class DepletionMove:
    """Result of the stateless depletion rule."""
    id: int
    frozen: bool


@dataclass(frozen=True)
class DepletionDecision:
    """Result of applying the policy to one trade event."""
    active_id: int
    freeze: FreezeState
    moved: bool
    update_volatility: bool
    attempted_delta: int


def next_id_with_depletion(current_id: int, delta: int, left: int, right: int, force_depletion: bool) -> DepletionMove:
    """
    Stateless next-index rule.

    Moves when depletion is off, or when the proposed index is inside the
    range. Otherwise reports the unchanged index as frozen.
    """
    next_id = current_id + delta
    if not force_depletion:
        return DepletionMove(id=next_id, frozen=False)
    if left <= next_id <= right:
        return DepletionMove(id=next_id, frozen=False)
    return DepletionMove(id=current_id, frozen=True)


class DepletionPolicy:
    """Tri-state freeze machine for one configured range."""

    def __init__(self, left: int, right: int, force_bin_depletion: bool = True):
        self.left = left
        self.right = right
        self.force_bin_depletion = force_bin_depletion

    @classmethod
    def from_config(cls, config) -> 'DepletionPolicy':
        return cls(
            left=config.grid.range_bins.left,
            right=config.grid.range_bins.right,
            force_bin_depletion=config.runtime.force_bin_depletion,
        )

    def in_range(self, index: int) -> bool:
        return self.left <= index <= self.right

    def apply(self, active_id: int, freeze: FreezeState, delta: int) -> DepletionDecision:
        """
        Decide where the active index goes for a trade of signed bin size delta.

        Args:
            active_id: Current active index
            freeze: Current freeze state
            delta: Signed number of bins the trade would move the index

        Returns:
            DepletionDecision with the new index, freeze state and whether the
            volatility accumulator must be updated for this event
        """
        next_id = active_id + delta

        if not self.force_bin_depletion:
            return DepletionDecision(next_id, FreezeState.IN_RANGE, True, True, delta)

        if freeze.is_frozen:
            if self.in_range(next_id):
                return DepletionDecision(next_id, FreezeState.IN_RANGE, True, True, delta)
            return DepletionDecision(active_id, freeze, False, False, delta)

        if self.in_range(active_id):
            if self.in_range(next_id):
                return DepletionDecision(next_id, FreezeState.IN_RANGE, True, True, delta)
            direction = FreezeState.FROZEN_ABOVE if next_id > self.right else FreezeState.FROZEN_BELOW
            return DepletionDecision(active_id, direction, False, True, delta)

        # Starting id already outside the range.
        direction = FreezeState.FROZEN_BELOW if active_id < self.left else FreezeState.FROZEN_ABOVE
        return DepletionDecision(active_id, direction, False, False, delta)

    def display_id(self, active_id: int, freeze: FreezeState) -> int:
        """Index shown to collaborators: one past the boundary while frozen."""
        if freeze is FreezeState.FROZEN_ABOVE:
            return self.right + 1
        if freeze is FreezeState.FROZEN_BELOW:
            return self.left - 1
        return active_id
