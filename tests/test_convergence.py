"""
Tests for the convergence detector.

Test Perspectives Table:
| Case ID | Input / Precondition | Perspective | Expected Result | Notes |
|---------|---------------------|-------------|-----------------|-------|
| TC-C-01 | counts 0,4,8,8,8,8, threshold 3 | Normal | converged on 6th, 4 reveals | Stall then grow |
| TC-C-02 | first count >= target | Boundary | converged, 0 reveals | Immediate |
| TC-C-03 | feed stays empty | Boundary | converged at 0, no reveals | Empty container |
| TC-C-04 | grows by 1 forever | Boundary | stops at max_cycles | Cap |
| TC-C-05 | grows to k then flat | Normal | <= k + threshold observations | Termination |
| TC-C-06 | count shrinks | Boundary | STALLED | Not growth |
| TC-C-07 | observe after converged | Boundary | stays CONVERGED, no count | Terminal |
| TC-C-08 | drive windows | Normal | contiguous (prev, cur) windows | Lazy yield |
| TC-C-09 | invalid config | Abnormal | ValueError | - |
| TC-C-10 | shrink then rise | Boundary | only items past the high-water mark yielded | Re-rendered feed |
| TC-C-11 | partial recovery after shrink | Boundary | counted as stall | No growth |
"""

import pytest

pytestmark = pytest.mark.unit

from prospector.collect.convergence import (
    ConvergenceConfig,
    ConvergenceDetector,
    ConvergenceState,
)


class ScriptedFeed:
    """Feed whose visible count follows a script; last value repeats."""

    def __init__(self, counts: list[int]):
        self.counts = counts
        self.observed = 0
        self.reveals = 0
        self.settles = 0

    async def count(self) -> int:
        value = self.counts[min(self.observed, len(self.counts) - 1)]
        self.observed += 1
        return value

    async def reveal(self) -> None:
        self.reveals += 1

    async def settle(self) -> None:
        self.settles += 1


async def run(detector: ConvergenceDetector, feed: ScriptedFeed) -> list[tuple[int, int]]:
    return [window async for window in detector.drive(feed.count, feed.reveal, feed.settle)]


class TestConvergenceConfig:
    """Tests for ConvergenceConfig."""

    def test_max_cycles(self) -> None:
        # Given: Default config
        config = ConvergenceConfig()

        # When/Then: cap is ceil(target / expected_per_cycle) + slack
        assert config.max_cycles(100) == 20
        assert config.max_cycles(95) == 20
        assert config.max_cycles(1) == 11

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"stagnation_threshold": 0},
            {"expected_per_cycle": 0},
            {"fixed_slack": -1},
            {"settle_seconds": -0.5},
        ],
    )
    def test_invalid_values_rejected(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            ConvergenceConfig(**kwargs)


class TestObserve:
    """Tests for ConvergenceDetector.observe()."""

    def test_growth_resets_stagnation(self) -> None:
        # Given: A detector that has stalled once
        detector = ConvergenceDetector(100)
        detector.observe(5)
        assert detector.observe(5) is ConvergenceState.STALLED
        assert detector.stagnation_count == 1

        # When: The count grows
        state = detector.observe(9)

        # Then: GROWING and the counter is reset
        assert state is ConvergenceState.GROWING
        assert detector.stagnation_count == 0

    def test_shrinking_count_is_stall(self) -> None:
        # Given: A detector at 10 items
        detector = ConvergenceDetector(100)
        detector.observe(10)

        # When: The feed reports fewer items
        state = detector.observe(7)

        # Then: Treated as a stall
        assert state is ConvergenceState.STALLED
        assert detector.last_count == 7

    def test_converged_is_terminal(self) -> None:
        # Given: A converged detector
        detector = ConvergenceDetector(3)
        detector.observe(3)
        assert detector.converged

        # When: Observing again
        state = detector.observe(10)

        # Then: Still converged, nothing recorded
        assert state is ConvergenceState.CONVERGED
        assert detector.observations == 1
        assert detector.last_count == 3

    def test_negative_target_rejected(self) -> None:
        with pytest.raises(ValueError):
            ConvergenceDetector(-1)


class TestDrive:
    """Tests for ConvergenceDetector.drive()."""

    @pytest.mark.asyncio
    async def test_stall_after_growth_converges_with_four_reveals(self) -> None:
        # Given: Counts 0,4,8,8,8,8 and threshold 3
        feed = ScriptedFeed([0, 4, 8, 8, 8, 8])
        detector = ConvergenceDetector(100, ConvergenceConfig(stagnation_threshold=3))

        # When: Driving to convergence
        windows = await run(detector, feed)

        # Then: Converged after the sixth observation with 4 reveals
        assert detector.converged
        assert detector.reason == "stagnated"
        assert detector.observations == 6
        assert feed.observed == 6
        assert detector.reveals == 4
        assert feed.reveals == 4
        assert windows == [(0, 4), (4, 8)]

    @pytest.mark.asyncio
    async def test_first_observation_at_target(self) -> None:
        # Given: A feed already showing more than the target
        feed = ScriptedFeed([25])
        detector = ConvergenceDetector(20)

        # When: Driving
        windows = await run(detector, feed)

        # Then: Converged immediately without any reveal
        assert detector.reason == "target_reached"
        assert feed.reveals == 0
        assert feed.settles == 0
        assert windows == [(0, 25)]

    @pytest.mark.asyncio
    async def test_empty_feed_converges_at_zero(self) -> None:
        # Given: A container that never fills
        feed = ScriptedFeed([0])
        detector = ConvergenceDetector(50, ConvergenceConfig(stagnation_threshold=3))

        # When: Driving
        windows = await run(detector, feed)

        # Then: Converged at zero after the threshold, never scrolled
        assert detector.converged
        assert detector.last_count == 0
        assert detector.observations == 3
        assert feed.reveals == 0
        assert windows == []

    @pytest.mark.asyncio
    async def test_slow_growth_hits_cycle_cap(self) -> None:
        # Given: A feed growing by one item per cycle
        config = ConvergenceConfig(stagnation_threshold=3, expected_per_cycle=10, fixed_slack=2)
        detector = ConvergenceDetector(50, config)
        feed = ScriptedFeed(list(range(1, 1000)))

        # When: Driving
        await run(detector, feed)

        # Then: Stopped by the cap
        assert detector.reason == "cycle_cap"
        assert detector.observations == config.max_cycles(50) == 7

    @pytest.mark.parametrize("k", [1, 3, 6])
    @pytest.mark.asyncio
    async def test_terminates_within_growth_plus_threshold(self, k: int) -> None:
        # Given: A feed that grows for k observations, then stays flat
        threshold = 3
        feed = ScriptedFeed([10 * (i + 1) for i in range(k)])
        detector = ConvergenceDetector(1000, ConvergenceConfig(stagnation_threshold=threshold))

        # When: Driving
        await run(detector, feed)

        # Then: Converged within k + threshold observations
        assert detector.converged
        assert detector.observations <= k + threshold
        assert detector.observations <= detector.max_cycles

    @pytest.mark.asyncio
    async def test_windows_cover_every_item_once(self) -> None:
        # Given: An uneven growth script
        feed = ScriptedFeed([3, 3, 7, 12, 12, 12, 12])
        detector = ConvergenceDetector(100)

        # When: Driving
        windows = await run(detector, feed)

        # Then: Windows are contiguous from 0 to the final count
        assert windows == [(0, 3), (3, 7), (7, 12)]

    @pytest.mark.asyncio
    async def test_rise_after_shrink_yields_only_unseen_items(self) -> None:
        # Given: A feed that drops from 8 to 5 visible cards, then shows 9
        feed = ScriptedFeed([8, 5, 9, 9, 9, 9])
        detector = ConvergenceDetector(100)

        # When: Driving
        windows = await run(detector, feed)

        # Then: Cards 5-7 are not yielded a second time
        assert windows == [(0, 8), (8, 9)]
        assert detector.high_water == 9

    @pytest.mark.asyncio
    async def test_partial_recovery_after_shrink_is_stall(self) -> None:
        # Given: A feed that drops from 8 to 5 and only climbs back to 7
        feed = ScriptedFeed([8, 5, 7, 7])
        detector = ConvergenceDetector(100, ConvergenceConfig(stagnation_threshold=3))

        # When: Driving
        windows = await run(detector, feed)

        # Then: Nothing new is yielded and stagnation is not reset
        assert windows == [(0, 8)]
        assert detector.reason == "stagnated"
        assert detector.observations == 4
