"""
Search session and orchestrator.

SearchOrchestrator.run() visits sources in declared order under one shared
target budget. A SearchSession owns everything one run accumulates (dedup
index, field registry, consulted sources) and is finalized into an immutable
SessionResult.

Example:
    orchestrator = SearchOrchestrator("dentist", Location("Lyon", "France"))
    result = await orchestrator.run(build_sources("quick", browser), 50)
"""

from __future__ import annotations

from collections.abc import Sequence
from contextlib import aclosing
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from prospector.collect.dedup import DeduplicationIndex
from prospector.collect.errors import FatalCollectionError, RecordRejected, SourceUnavailable
from prospector.collect.rate_governor import RateGovernor
from prospector.collect.records import FieldRegistry, Record, identity_key, merge
from prospector.sources.base import Location, SourceAdapter, SourceDescriptor
from prospector.utils.logging import LogContext, get_logger

logger = get_logger(__name__)


class SessionOutcome(str, Enum):
    """How a run ended."""

    BUDGET_MET = "budget_met"
    SOURCES_EXHAUSTED = "sources_exhausted"


class SourceYield(BaseModel):
    """Per-source accounting for one run."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Source display name")
    accepted_count: int = Field(default=0, ge=0, description="Records accepted from this source")
    rejected_count: int = Field(default=0, ge=0, description="Duplicates and records without identity")
    error: str | None = Field(default=None, description="Why the source stopped early, if it failed")


class SessionResult(BaseModel):
    """Read-only outcome of a run."""

    model_config = ConfigDict(frozen=True)

    records: tuple[dict[str, Any], ...] = Field(default=(), description="Accepted records in acceptance order")
    fields: tuple[str, ...] = Field(default=(), description="Discovered field names, first-seen order")
    sources_consulted: tuple[SourceYield, ...] = Field(default=(), description="Sources in attempt order")
    target_budget: int = Field(..., gt=0)
    outcome: SessionOutcome

    @property
    def shortfall(self) -> int:
        return self.target_budget - len(self.records)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "records": [dict(r) for r in self.records],
            "fields": list(self.fields),
            "sources_consulted": [s.model_dump() for s in self.sources_consulted],
            "target_budget": self.target_budget,
            "shortfall": self.shortfall,
            "outcome": self.outcome.value,
        }


class SearchSession:
    """Mutable accumulation state for a single run.

    Owned by one orchestrator call; never shared between runs.
    """

    def __init__(self, target_budget: int):
        if target_budget <= 0:
            raise ValueError("target_budget must be a positive integer")
        self.target_budget = target_budget
        self.fields = FieldRegistry()
        self.index = DeduplicationIndex(self.fields)
        self._yields: list[dict[str, Any]] = []
        self._finalized = False

    @property
    def records(self) -> list[Record]:
        return self.index.records

    @property
    def remaining(self) -> int:
        return max(self.target_budget - len(self.index), 0)

    @property
    def budget_met(self) -> bool:
        return len(self.index) >= self.target_budget

    def begin_source(self, name: str) -> None:
        """Record that a source is being attempted."""
        self._check_open()
        self._yields.append({"name": name, "accepted_count": 0, "rejected_count": 0, "error": None})

    def try_accept(self, record: Record) -> bool:
        """Submit a record on behalf of the current source.

        Returns False without storing anything once the budget is met.
        """
        self._check_open()
        if not self._yields:
            raise RuntimeError("begin_source() must be called before submitting records")
        if self.budget_met:
            return False

        current = self._yields[-1]
        try:
            self.index.accept(record)
        except RecordRejected as e:
            current["rejected_count"] += 1
            logger.debug("Record rejected", reason=e.reason.value, key=e.key)
            return False
        current["accepted_count"] += 1
        return True

    def record_failure(self, error: str) -> None:
        """Attach an error to the current source."""
        self._check_open()
        if self._yields:
            self._yields[-1]["error"] = error

    def finalize(self) -> SessionResult:
        """Freeze the session into its result. The session is closed afterwards."""
        self._check_open()
        self._finalized = True
        return SessionResult(
            records=tuple(dict(r) for r in self.records),
            fields=self.fields.snapshot(),
            sources_consulted=tuple(SourceYield(**y) for y in self._yields),
            target_budget=self.target_budget,
            outcome=SessionOutcome.BUDGET_MET if self.budget_met else SessionOutcome.SOURCES_EXHAUSTED,
        )

    def _check_open(self) -> None:
        if self._finalized:
            raise RuntimeError("Session already finalized")


class SearchOrchestrator:
    """Drives sources sequentially until the budget is met or sources run out."""

    def __init__(
        self,
        query: str,
        location: Location,
        governor: RateGovernor | None = None,
        enrich: bool = True,
    ):
        """
        Args:
            query: Free-text entity query.
            location: Search location.
            governor: Delay applied between sources.
            enrich: Call enrich() on adapters that support it.
        """
        self.query = query
        self.location = location
        self.governor = governor or RateGovernor(0.0)
        self.enrich = enrich

    async def run(self, sources: Sequence[SourceDescriptor], target_budget: int) -> SessionResult:
        """Collect up to target_budget unique records from sources in order.

        Raises:
            ValueError: target_budget is not positive.
            FatalCollectionError: The environment failed (propagated as is).
        """
        session = SearchSession(target_budget)
        logger.info(
            "Search started",
            query=self.query,
            location=str(self.location),
            budget=target_budget,
            sources=len(sources),
        )

        previous: SourceDescriptor | None = None
        for source in sources:
            if session.budget_met:
                break
            if previous is not None:
                # Keyed on the source just visited so its failures stretch the gap
                await self.governor.wait(previous.name)
            previous = source

            session.begin_source(source.name)
            with LogContext(source=source.name):
                await self._run_source(session, source)

        result = session.finalize()
        logger.info(
            "Search finished",
            records=len(result.records),
            fields=len(result.fields),
            outcome=result.outcome.value,
            shortfall=result.shortfall,
        )
        return result

    async def _run_source(self, session: SearchSession, source: SourceDescriptor) -> None:
        adapter = source.adapter
        accepted_before = len(session.index)
        try:
            stream = adapter.collect(self.query, self.location, session.remaining)
            async with aclosing(stream):
                async for partial in stream:
                    record = await self._enrich(adapter, session, partial)
                    session.try_accept(record)
                    if session.budget_met:
                        break
        except FatalCollectionError:
            raise
        except SourceUnavailable as e:
            logger.warning("Source unavailable", reason=e.reason)
            session.record_failure(e.reason)
            self.governor.record_failure(source.name)
        except Exception as e:
            logger.error("Source failed", error=str(e), error_type=type(e).__name__)
            session.record_failure(f"{type(e).__name__}: {e}")
            self.governor.record_failure(source.name)
        else:
            self.governor.record_success(source.name)
        finally:
            await adapter.close()

        logger.info(
            "Source finished",
            accepted=len(session.index) - accepted_before,
            total=len(session.index),
            remaining=session.remaining,
        )

    async def _enrich(self, adapter: SourceAdapter, session: SearchSession, record: Record) -> Record:
        if not (self.enrich and adapter.supports_enrichment):
            return record
        if identity_key(record) is None or session.index.contains(record):
            return record

        try:
            extra = await adapter.enrich(record)
        except FatalCollectionError:
            raise
        except Exception as e:
            logger.warning("Enrichment failed", name=record.get("name"), error=str(e))
            return record
        return merge(record, extra)
