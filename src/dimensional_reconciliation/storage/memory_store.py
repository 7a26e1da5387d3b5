"""
In-memory staging source and dimension store.
"""

from collections import Counter
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional
import logging
import threading

from ..common.config import SCDConfig
from ..common.exceptions import ApplyFailure
from ..common.models import ApplyResult, ChangeSet, DimensionRecord, StagingRecord
from ..common.utils import ensure_utc, format_natural_key, natural_key_sort_key
from .base import DimensionStore, StagingSource

logger = logging.getLogger(__name__)


class InMemoryStagingSource(StagingSource):
    """Staging snapshot backed by a list of flat rows."""

    def __init__(self, rows: Iterable[Mapping[str, Any]], config: SCDConfig):
        self.rows = [dict(row) for row in rows]
        self.config = config

    def read_all(self) -> List[StagingRecord]:
        return [StagingRecord.from_row(row, self.config) for row in self.rows]


class InMemoryDimensionStore(DimensionStore):
    """
    Dimension table held in process memory.

    A change set is applied to a private copy of the table; the copy
    replaces the table only when every effect succeeded, so readers see
    either the whole change set or none of it.

    ``snapshot_version`` is the version observed by the calling thread's
    most recent read, captured under the same lock as the data, so a write
    committed after that read makes the derived change set stale.
    """

    def __init__(self, config: SCDConfig, records: Optional[Iterable[DimensionRecord]] = None):
        """
        Initialize InMemoryDimensionStore.

        Args:
            config: Dimension configuration
            records: Initial table content
        """
        super().__init__(config)
        self._lock = threading.Lock()
        self._records: List[DimensionRecord] = [self._copy(r) for r in (records or [])]
        self._version = 0
        self._reads = threading.local()
        self._next_surrogate_key = 1 + max(
            (r.surrogate_key for r in self._records if isinstance(r.surrogate_key, int)),
            default=0
        )

    @classmethod
    def from_rows(cls, config: SCDConfig, rows: Iterable[Mapping[str, Any]]) -> "InMemoryDimensionStore":
        return cls(config, [DimensionRecord.from_row(row, config) for row in rows])

    @property
    def snapshot_version(self) -> Optional[int]:
        return getattr(self._reads, "version", None)

    @property
    def version(self) -> int:
        """Current committed version of the table."""
        with self._lock:
            return self._version

    def read_active(self) -> List[DimensionRecord]:
        with self._lock:
            self._reads.version = self._version
            return self._sorted([self._copy(r) for r in self._records if r.is_active])

    def read_all(self) -> List[DimensionRecord]:
        with self._lock:
            self._reads.version = self._version
            return self._sorted([self._copy(r) for r in self._records])

    def rows(self) -> List[Dict[str, Any]]:
        """Current table content as flat rows."""
        return [record.to_row(self.config) for record in self.read_all()]

    def apply_atomically(self, change_set: ChangeSet) -> ApplyResult:
        with self._lock:
            if change_set.snapshot_version is not None and change_set.snapshot_version != self._version:
                raise ApplyFailure(
                    f"Change set was derived from version {change_set.snapshot_version} but "
                    f"{self.config.target_table} is at version {self._version}",
                    change_set_id=change_set.change_set_id)

            records = list(self._records)
            next_surrogate_key = self._next_surrogate_key

            self._expire(records, change_set)
            self._overwrite(records, change_set)
            for record in change_set.inserts:
                self._check_insertable(records, record, change_set)
                records.append(replace(self._copy(record), surrogate_key=next_surrogate_key))
                next_surrogate_key += 1
            self._check_single_active(records, change_set)

            self._records = records
            self._next_surrogate_key = next_surrogate_key
            self._version += 1
            logger.info(f"Applied change set {change_set.change_set_id} to {self.config.target_table}, "
                        f"now at version {self._version}")

        return ApplyResult.from_change_set(change_set)

    def _expire(self, records: List[DimensionRecord], change_set: ChangeSet) -> None:
        end_time = ensure_utc(change_set.run_time)
        for natural_key in change_set.expirations:
            index = self._find_active(records, natural_key, change_set)
            records[index] = replace(records[index], end_time=end_time, is_active=False)

    def _overwrite(self, records: List[DimensionRecord], change_set: ChangeSet) -> None:
        for natural_key, delta in change_set.updates:
            index = self._find_active(records, natural_key, change_set)
            record = records[index]
            previous_attributes = dict(record.previous_attributes)
            previous_attributes.update(delta.previous_attributes)
            records[index] = replace(record, attributes=dict(delta.attributes),
                                     previous_attributes=previous_attributes)

    def _find_active(self, records: List[DimensionRecord], natural_key, change_set: ChangeSet) -> int:
        for index, record in enumerate(records):
            if record.natural_key == natural_key and record.is_active:
                return index
        raise ApplyFailure(f"No active record for key {format_natural_key(natural_key)} "
                           f"in {self.config.target_table}",
                           change_set_id=change_set.change_set_id)

    def _check_insertable(self, records: List[DimensionRecord], new_record: DimensionRecord,
                          change_set: ChangeSet) -> None:
        if any(r.natural_key == new_record.natural_key and r.is_active for r in records):
            raise ApplyFailure(f"Key {format_natural_key(new_record.natural_key)} already has an "
                               f"active record in {self.config.target_table}",
                               change_set_id=change_set.change_set_id)

    def _check_single_active(self, records: List[DimensionRecord], change_set: ChangeSet) -> None:
        counts = Counter(r.natural_key for r in records if r.is_active)
        conflicts = [k for k, n in counts.items() if n > 1]
        if conflicts:
            raise ApplyFailure(f"Change set would leave multiple active versions for "
                               f"{len(conflicts)} keys", change_set_id=change_set.change_set_id)

    def _copy(self, record: DimensionRecord) -> DimensionRecord:
        return replace(record, attributes=dict(record.attributes),
                       previous_attributes=dict(record.previous_attributes))

    def _sorted(self, records: List[DimensionRecord]) -> List[DimensionRecord]:
        return sorted(records, key=lambda r: (natural_key_sort_key(r.natural_key),
                                              r.start_time is not None,
                                              ensure_utc(r.start_time) if r.start_time else 0))
