"""
Identity-keyed deduplication index.

Single owner, single thread: the orchestrator is the only caller, so
try_accept needs no locking.
"""

from __future__ import annotations

from prospector.collect.errors import RecordRejected, RejectionReason
from prospector.collect.records import FieldRegistry, Record, compact, identity_key
from prospector.utils.logging import get_logger

logger = get_logger(__name__)


class DeduplicationIndex:
    """Accumulates accepted records, keyed by name + source URL.

    Example:
        index = DeduplicationIndex(FieldRegistry())
        index.try_accept({"name": "Jane Doe", "source_url": "https://x/1"})  # True
        index.try_accept({"name": "jane doe", "source_url": "HTTPS://X/1"})  # False
    """

    def __init__(self, fields: FieldRegistry | None = None):
        self.fields = fields if fields is not None else FieldRegistry()
        self._keys: set[str] = set()
        self._records: list[Record] = []

    @property
    def records(self) -> list[Record]:
        """Accepted records in acceptance order."""
        return self._records

    def contains(self, record: Record) -> bool:
        """Whether a record with the same identity was already accepted."""
        key = identity_key(record)
        return key is not None and key in self._keys

    def check(self, record: Record) -> str:
        """Validate a record for acceptance.

        Returns:
            The record's identity key.

        Raises:
            RecordRejected: Missing name/URL, or duplicate identity.
        """
        key = identity_key(record)
        if key is None:
            raise RecordRejected(RejectionReason.MISSING_IDENTITY)
        if key in self._keys:
            raise RecordRejected(RejectionReason.DUPLICATE, key)
        return key

    def accept(self, record: Record) -> Record:
        """Store a record, raising RecordRejected if it cannot be stored.

        Empty-valued keys are dropped so that every stored key is also
        present in the field registry.
        """
        key = self.check(record)
        stored = compact(record)
        self._keys.add(key)
        self._records.append(stored)
        self.fields.register(stored)
        return stored

    def try_accept(self, record: Record) -> bool:
        """Accept a record on first sighting; False for rejects and duplicates."""
        try:
            self.accept(record)
        except RecordRejected as e:
            logger.debug("Record rejected", reason=e.reason.value, key=e.key)
            return False
        return True

    def __len__(self) -> int:
        return len(self._records)
