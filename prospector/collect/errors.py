"""
Error taxonomy for the collection core.

- SourceUnavailable: one source produced no data (navigation timeout,
  expected container missing). The orchestrator skips to the next source.
- RecordRejected: a partial record has no identity or is a duplicate.
  Normal filtering, never logged as an error.
- FatalCollectionError: failures outside adapter control (the browser
  itself cannot start). These abort the session.

Running out of sources before the budget is met is not an error; it is
reported as SessionOutcome.SOURCES_EXHAUSTED on the session result.
"""

from enum import Enum


class CollectionError(Exception):
    """Base class for collection errors."""


class SourceUnavailable(CollectionError):
    """A source adapter could not produce data."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")


class RejectionReason(str, Enum):
    """Why a partial record did not enter the dataset."""

    MISSING_IDENTITY = "missing_identity"
    DUPLICATE = "duplicate"


class RecordRejected(CollectionError):
    """A record was filtered out by the deduplication index."""

    def __init__(self, reason: RejectionReason, key: str | None = None):
        self.reason = reason
        self.key = key
        super().__init__(f"record rejected: {reason.value}" + (f" ({key})" if key else ""))


class FatalCollectionError(CollectionError):
    """Session-aborting failure. Never caught by the orchestrator."""


class BrowserUnavailableError(FatalCollectionError):
    """The shared browser environment failed to initialize."""
