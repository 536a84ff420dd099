"""
Rate governors: spacing between successive requests to a source.

RateGovernor is the baseline fixed delay. BackoffRateGovernor keeps the
same contract but stretches the delay for a source after it fails.
"""

from __future__ import annotations

import asyncio
import random

from prospector.utils.config import RateConfig
from prospector.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_KEY = "default"


class RateGovernor:
    """Fixed inter-request delay. No retries, no escalation.

    Example:
        governor = RateGovernor(3.0)
        await governor.wait("Google Maps")
    """

    def __init__(self, interval_seconds: float = 3.0):
        if interval_seconds < 0:
            raise ValueError("interval_seconds must be non-negative")
        self.interval_seconds = interval_seconds

    def delay_for(self, source: str | None = None) -> float:
        """Seconds the next wait() for this source will suspend."""
        return self.interval_seconds

    async def wait(self, source: str | None = None) -> None:
        """Suspend before the next outbound request to a source."""
        delay = self.delay_for(source)
        if delay > 0:
            logger.debug("Rate delay", source=source or DEFAULT_KEY, seconds=round(delay, 2))
        await asyncio.sleep(delay)

    def record_success(self, source: str | None = None) -> None:
        """Report a successful request (no-op for the fixed policy)."""

    def record_failure(self, source: str | None = None) -> None:
        """Report a failed request (no-op for the fixed policy)."""


class BackoffRateGovernor(RateGovernor):
    """Per-source exponential backoff with jitter.

    A healthy source waits the base interval. After n consecutive failures
    it waits step * exponential_base ** n, capped at max_delay and never
    below the base interval, where step is the base interval (or one
    second when the base interval is zero). Success resets the source.

    Example:
        governor = BackoffRateGovernor(2.0, max_delay=30.0)
        governor.record_failure("LinkedIn")
        await governor.wait("LinkedIn")  # about 4 seconds
    """

    def __init__(
        self,
        interval_seconds: float = 3.0,
        *,
        max_delay: float = 60.0,
        exponential_base: float = 2.0,
        jitter_factor: float = 0.1,
    ):
        super().__init__(interval_seconds)
        if max_delay < interval_seconds:
            raise ValueError("max_delay must be >= interval_seconds")
        if exponential_base <= 1:
            raise ValueError("exponential_base must be > 1")
        if not 0 <= jitter_factor <= 1:
            raise ValueError("jitter_factor must be between 0 and 1")
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter_factor = jitter_factor
        self._failures: dict[str, int] = {}

    def failures(self, source: str | None = None) -> int:
        return self._failures.get(source or DEFAULT_KEY, 0)

    def delay_for(self, source: str | None = None) -> float:
        failures = self.failures(source)
        if failures == 0:
            return self.interval_seconds

        step = self.interval_seconds or 1.0
        delay = min(step * self.exponential_base**failures, self.max_delay)
        if self.jitter_factor > 0:
            spread = delay * self.jitter_factor
            delay += random.uniform(-spread, spread)
        return max(self.interval_seconds, delay)

    def record_success(self, source: str | None = None) -> None:
        self._failures.pop(source or DEFAULT_KEY, None)

    def record_failure(self, source: str | None = None) -> None:
        key = source or DEFAULT_KEY
        self._failures[key] = self._failures.get(key, 0) + 1
        logger.info(
            "Source backoff increased",
            source=key,
            failures=self._failures[key],
            next_delay=round(self.delay_for(key), 2),
        )


def build_rate_governor(config: RateConfig, interval_seconds: float | None = None) -> RateGovernor:
    """Create the governor selected by configuration.

    Args:
        config: Rate configuration section.
        interval_seconds: Override for the base interval (defaults to
            config.interval_seconds).
    """
    interval = config.interval_seconds if interval_seconds is None else interval_seconds
    if config.strategy == "backoff":
        return BackoffRateGovernor(
            interval,
            max_delay=max(config.backoff_max_seconds, interval),
            exponential_base=config.backoff_exponential_base,
            jitter_factor=config.jitter_factor,
        )
    return RateGovernor(interval)
