"""
Dimensional Reconciliation Library

Slowly Changing Dimension reconciliation for Type 1 (overwrite), Type 2
(row versioning) and Type 3 (previous-value columns) dimensions, with
in-memory and Delta Lake dimension stores.

Main Components:
- RecordComparator: Attribute-level change detection with SQL null semantics
- ChangeClassifier: Classifies staging records against the active dimension
- Type1Reconciler / Type2Reconciler / Type3Reconciler: Build change sets
- MergeExecutor: Applies a change set atomically, at most once
- SCDProcessor: Runs a complete reconciliation

Author: Data Engineering Team
Version: 1.0.0
"""

from .comparison.record_comparator import RecordComparator, ComparisonResult
from .comparison.change_classifier import ChangeClassifier, Classification, ChangeType
from .reconciliation.type1_reconciler import Type1Reconciler
from .reconciliation.type2_reconciler import Type2Reconciler
from .reconciliation.type3_reconciler import Type3Reconciler
from .reconciliation.merge_executor import MergeExecutor
from .reconciliation.scd_processor import SCDProcessor, get_reconciler
from .storage.base import StagingSource, DimensionStore
from .storage.memory_store import InMemoryStagingSource, InMemoryDimensionStore
from .common.config import SCDConfig, SCDType, NullComparison, ProcessingMetrics
from .common.models import StagingRecord, DimensionRecord, AttributeDelta, ChangeSet, ApplyResult
from .common.exceptions import (
    DimensionalReconciliationError,
    ConfigurationError,
    SCDValidationError,
    SCDProcessingError,
    DuplicateKeyError,
    MultipleActiveVersionsError,
    ApplyFailure,
    ChangeSetAlreadyAppliedError
)

__version__ = "1.0.0"
__author__ = "Data Engineering Team"

__all__ = [
    "RecordComparator",
    "ComparisonResult",
    "ChangeClassifier",
    "Classification",
    "ChangeType",
    "Type1Reconciler",
    "Type2Reconciler",
    "Type3Reconciler",
    "MergeExecutor",
    "SCDProcessor",
    "get_reconciler",
    "StagingSource",
    "DimensionStore",
    "InMemoryStagingSource",
    "InMemoryDimensionStore",
    "SCDConfig",
    "SCDType",
    "NullComparison",
    "ProcessingMetrics",
    "StagingRecord",
    "DimensionRecord",
    "AttributeDelta",
    "ChangeSet",
    "ApplyResult",
    "DimensionalReconciliationError",
    "ConfigurationError",
    "SCDValidationError",
    "SCDProcessingError",
    "DuplicateKeyError",
    "MultipleActiveVersionsError",
    "ApplyFailure",
    "ChangeSetAlreadyAppliedError"
]
