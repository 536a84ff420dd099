"""
Convergence detection for incrementally revealed feeds.

A feed (infinite scroll, "load more") shows more items each time it is
nudged. The detector watches the visible item count and decides when to
stop nudging:

- GROWING: the count rose above the highest count seen so far
- STALLED: no new items; the stagnation counter goes up
- CONVERGED: terminal; stagnation threshold reached, target reached,
  or the iteration cap exhausted

The iteration cap ceil(target / expected_per_cycle) + fixed_slack bounds
the loop even for a feed that grows by one item per cycle forever.
"""

from __future__ import annotations

import math
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from prospector.utils.logging import get_logger

logger = get_logger(__name__)


class ConvergenceState(str, Enum):
    """Observable detector states."""

    GROWING = "growing"
    STALLED = "stalled"
    CONVERGED = "converged"


@dataclass(frozen=True)
class ConvergenceConfig:
    """Configuration for convergence detection."""

    stagnation_threshold: int = 3  # Consecutive unchanged observations
    expected_per_cycle: int = 10  # Items a reveal usually adds
    fixed_slack: int = 10  # Extra cycles on top of the estimate
    settle_seconds: float = 3.0  # Wait after each reveal

    def __post_init__(self) -> None:
        if self.stagnation_threshold < 1:
            raise ValueError("stagnation_threshold must be >= 1")
        if self.expected_per_cycle < 1:
            raise ValueError("expected_per_cycle must be >= 1")
        if self.fixed_slack < 0:
            raise ValueError("fixed_slack must be non-negative")
        if self.settle_seconds < 0:
            raise ValueError("settle_seconds must be non-negative")

    def max_cycles(self, target_count: int) -> int:
        """Iteration cap for a given target."""
        return math.ceil(target_count / self.expected_per_cycle) + self.fixed_slack


class ConvergenceDetector:
    """
    Decides when an incrementally revealed source has stopped yielding.

    Example:
        detector = ConvergenceDetector(target_count=50)
        async for start, end in detector.drive(count_cards, scroll_feed, settle):
            ...  # cards[start:end] are new
    """

    def __init__(self, target_count: int, config: ConvergenceConfig | None = None):
        if target_count < 0:
            raise ValueError("target_count must be non-negative")
        self.config = config or ConvergenceConfig()
        self.target_count = target_count
        self.max_cycles = self.config.max_cycles(target_count)

        self.state: ConvergenceState | None = None
        self.last_count = 0
        self.high_water = 0  # Highest count observed; items below it were already yielded
        self.stagnation_count = 0
        self.observations = 0
        self.reveals = 0
        self.reason: str | None = None

    @property
    def converged(self) -> bool:
        return self.state is ConvergenceState.CONVERGED

    def observe(self, count: int) -> ConvergenceState:
        """Record the current visible item count and transition.

        Args:
            count: Items currently visible in the feed.

        Returns:
            The new state.
        """
        if self.converged:
            return ConvergenceState.CONVERGED

        self.observations += 1
        if count > self.high_water:
            self.state = ConvergenceState.GROWING
            self.stagnation_count = 0
        else:
            self.state = ConvergenceState.STALLED
            self.stagnation_count += 1
        self.last_count = count
        self.high_water = max(self.high_water, count)

        if count >= self.target_count:
            self._converge("target_reached")
        elif self.stagnation_count >= self.config.stagnation_threshold:
            self._converge("stagnated")
        elif self.observations >= self.max_cycles:
            self._converge("cycle_cap")

        return self.state

    def should_reveal(self) -> bool:
        """Whether a reveal action is worth issuing now.

        An empty feed is only waited on; there is nothing to scroll past.
        """
        return not self.converged and self.last_count > 0

    def _converge(self, reason: str) -> None:
        self.state = ConvergenceState.CONVERGED
        self.reason = reason
        logger.debug(
            "Feed converged",
            reason=reason,
            count=self.last_count,
            observations=self.observations,
            reveals=self.reveals,
        )

    async def drive(
        self,
        count_items: Callable[[], Awaitable[int]],
        reveal_more: Callable[[], Awaitable[None]],
        settle: Callable[[], Awaitable[None]],
    ) -> AsyncIterator[tuple[int, int]]:
        """Run observe -> reveal -> settle cycles until convergence.

        Each cycle's reveal and settle complete before the next count is
        taken; otherwise the growth comparison is meaningless.

        Args:
            count_items: Returns the number of items currently visible.
            reveal_more: Triggers the next batch (scroll, "more" button).
            settle: Waits for the revealed batch to load.

        Yields:
            (start, end) index windows of newly visible items.
        """
        while True:
            previous = self.high_water
            current = await count_items()
            state = self.observe(current)

            if current > previous:
                yield previous, current

            if state is ConvergenceState.CONVERGED:
                return

            if self.should_reveal():
                await reveal_more()
                self.reveals += 1
            await settle()
