"""
Common utilities and configurations for dimensional reconciliation library.
"""

from .config import SCDConfig, SCDType, NullComparison, ProcessingMetrics, ValidationResult
from .exceptions import (
    DimensionalReconciliationError,
    ConfigurationError,
    SCDValidationError,
    SCDProcessingError,
    DuplicateKeyError,
    MultipleActiveVersionsError,
    ApplyFailure,
    ChangeSetAlreadyAppliedError
)
from .models import (
    StagingRecord,
    DimensionRecord,
    AttributeDelta,
    ChangeSet,
    ApplyResult
)
from .utils import ensure_utc, find_missing_columns

__all__ = [
    "SCDConfig",
    "SCDType",
    "NullComparison",
    "ProcessingMetrics",
    "ValidationResult",
    "DimensionalReconciliationError",
    "ConfigurationError",
    "SCDValidationError",
    "SCDProcessingError",
    "DuplicateKeyError",
    "MultipleActiveVersionsError",
    "ApplyFailure",
    "ChangeSetAlreadyAppliedError",
    "StagingRecord",
    "DimensionRecord",
    "AttributeDelta",
    "ChangeSet",
    "ApplyResult",
    "ensure_utc",
    "find_missing_columns"
]
