"""
Per-key classification of a staging snapshot against the active dimension.
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Sequence
import logging

from ..common.config import SCDConfig
from ..common.exceptions import DuplicateKeyError, MultipleActiveVersionsError
from ..common.models import DimensionRecord, NaturalKey, StagingRecord
from ..common.utils import format_natural_key, natural_key_sort_key
from .record_comparator import RecordComparator

logger = logging.getLogger(__name__)


class ChangeType(Enum):
    """Outcome of classifying one natural key."""
    UNCHANGED = "unchanged"
    NEW = "new"
    MODIFIED = "modified"
    MISSING_FROM_STAGING = "missing_from_staging"


@dataclass(frozen=True)
class ClassifiedRecord:
    """One natural key with its staging and current sides."""

    natural_key: NaturalKey
    change_type: ChangeType
    staging: Optional[StagingRecord] = None
    current: Optional[DimensionRecord] = None
    diff_attributes: FrozenSet[str] = field(default_factory=frozenset)


@dataclass
class Classification:
    """Result of correlating staging with the active dimension, sorted by key."""

    unchanged: List[ClassifiedRecord] = field(default_factory=list)
    new: List[ClassifiedRecord] = field(default_factory=list)
    modified: List[ClassifiedRecord] = field(default_factory=list)
    missing_from_staging: List[ClassifiedRecord] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {
            "unchanged": len(self.unchanged),
            "new": len(self.new),
            "modified": len(self.modified),
            "missing_from_staging": len(self.missing_from_staging)
        }


class ChangeClassifier:
    """Classifies staging records as unchanged, new or modified."""

    def __init__(self, config: SCDConfig, comparator: Optional[RecordComparator] = None):
        """
        Initialize ChangeClassifier with configuration.

        Args:
            config: Dimension configuration
            comparator: Comparator to use; built from config when omitted
        """
        self.config = config
        self.comparator = comparator or RecordComparator(config.null_comparison_enum)

    def classify(self, staging: Sequence[StagingRecord],
                 active_dimension: Sequence[DimensionRecord]) -> Classification:
        """
        Full outer correlation of staging and active dimension on natural key.

        Args:
            staging: Staging snapshot
            active_dimension: Active dimension records (all records for Type 1/3)

        Returns:
            Classification with every list sorted by natural key
        """
        staging_by_key = self._index_staging(staging)
        current_by_key = self._index_active(active_dimension)

        classification = Classification()
        for key in sorted(staging_by_key.keys() | current_by_key.keys(), key=natural_key_sort_key):
            staging_record = staging_by_key.get(key)
            current_record = current_by_key.get(key)

            if current_record is None:
                classification.new.append(
                    ClassifiedRecord(key, ChangeType.NEW, staging=staging_record))
            elif staging_record is None:
                classification.missing_from_staging.append(
                    ClassifiedRecord(key, ChangeType.MISSING_FROM_STAGING, current=current_record))
            else:
                result = self.comparator.compare(staging_record.attributes,
                                                 current_record.attributes,
                                                 self.config.tracked_columns)
                if result.changed:
                    classification.modified.append(
                        ClassifiedRecord(key, ChangeType.MODIFIED, staging_record,
                                         current_record, result.diff_attributes))
                else:
                    classification.unchanged.append(
                        ClassifiedRecord(key, ChangeType.UNCHANGED, staging_record, current_record))

        if classification.missing_from_staging:
            logger.warning(f"{len(classification.missing_from_staging)} dimension keys are absent "
                           f"from staging and left untouched")

        logger.info(f"Classification for {self.config.target_table}: {classification.counts()}")
        return classification

    def _index_staging(self, staging: Sequence[StagingRecord]) -> Dict[NaturalKey, StagingRecord]:
        """Index staging by natural key, refusing duplicate keys."""
        counts = Counter(record.natural_key for record in staging)
        duplicates = sorted((k for k, n in counts.items() if n > 1), key=natural_key_sort_key)
        if duplicates:
            rendered = ", ".join(format_natural_key(k) for k in duplicates)
            logger.error(f"Duplicate natural keys in staging: {rendered}")
            raise DuplicateKeyError(f"Duplicate natural keys in staging: {rendered}", duplicates)

        return {record.natural_key: record for record in staging}

    def _index_active(self, records: Sequence[DimensionRecord]) -> Dict[NaturalKey, DimensionRecord]:
        """Index active dimension records by natural key, refusing multiple active versions."""
        active = [record for record in records if record.is_active]
        counts = Counter(record.natural_key for record in active)
        conflicts = sorted((k for k, n in counts.items() if n > 1), key=natural_key_sort_key)
        if conflicts:
            rendered = ", ".join(format_natural_key(k) for k in conflicts)
            logger.error(f"Multiple active versions in {self.config.target_table}: {rendered}")
            raise MultipleActiveVersionsError(
                f"Multiple active versions in {self.config.target_table}: {rendered}", conflicts)

        return {record.natural_key: record for record in active}
