"""
Configuration classes for dimensional reconciliation library.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Tuple, Type, Union
from enum import Enum

from .exceptions import ConfigurationError


class SCDType(Enum):
    """Enumeration of supported slowly changing dimension types."""
    TYPE_1 = 1
    TYPE_2 = 2
    TYPE_3 = 3


class NullComparison(Enum):
    """How two nulls compare during change detection."""
    DISTINCT = "distinct"          # SQL '=': NULL never equals anything
    NOT_DISTINCT = "not_distinct"  # SQL 'IS NOT DISTINCT FROM'


@dataclass
class SCDConfig:
    """Configuration for one dimension's reconciliation."""

    # Required parameters
    target_table: str
    natural_key_columns: List[str]
    tracked_columns: List[str]

    # SCD behaviour
    scd_type: int = 2
    previous_value_columns: List[str] = field(default_factory=list)
    null_comparison: str = "distinct"

    # Declared attribute domains, e.g. {"age": int, "city": str}
    attribute_types: Dict[str, Union[Type, Tuple[Type, ...]]] = field(default_factory=dict)

    # Standard column names
    effective_start_column: str = "effective_start_ts_utc"
    effective_end_column: str = "effective_end_ts_utc"
    is_current_column: str = "is_current"
    surrogate_key_column: str = "surrogate_key"
    previous_column_prefix: str = "previous_"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.target_table:
            raise ConfigurationError("target_table is required", "target_table")
        if not self.natural_key_columns:
            raise ConfigurationError("natural_key_columns cannot be empty", "natural_key_columns")
        if not self.tracked_columns:
            raise ConfigurationError("tracked_columns cannot be empty", "tracked_columns")

        valid_types = [scd_type.value for scd_type in SCDType]
        if self.scd_type not in valid_types:
            raise ConfigurationError(f"scd_type must be one of {valid_types}", "scd_type")

        valid_null_modes = [mode.value for mode in NullComparison]
        if self.null_comparison not in valid_null_modes:
            raise ConfigurationError(f"null_comparison must be one of {valid_null_modes}",
                                     "null_comparison")

        overlap = set(self.natural_key_columns) & set(self.tracked_columns)
        if overlap:
            raise ConfigurationError(
                f"natural key columns cannot be tracked attributes: {sorted(overlap)}",
                "tracked_columns"
            )

        if self.previous_value_columns:
            if self.scd_type != SCDType.TYPE_3.value:
                raise ConfigurationError("previous_value_columns is only valid for scd_type 3",
                                         "previous_value_columns")
            untracked = set(self.previous_value_columns) - set(self.tracked_columns)
            if untracked:
                raise ConfigurationError(
                    f"previous_value_columns must be tracked columns: {sorted(untracked)}",
                    "previous_value_columns"
                )
        elif self.scd_type == SCDType.TYPE_3.value:
            raise ConfigurationError("previous_value_columns cannot be empty for scd_type 3",
                                     "previous_value_columns")

    @property
    def scd_type_enum(self) -> SCDType:
        """SCD type as an enum member."""
        return SCDType(self.scd_type)

    @property
    def null_comparison_enum(self) -> NullComparison:
        """Null comparison mode as an enum member."""
        return NullComparison(self.null_comparison)

    def previous_column(self, attribute: str) -> str:
        """Name of the column holding the previous value of an attribute."""
        return f"{self.previous_column_prefix}{attribute}"

    def metadata_columns(self) -> List[str]:
        """Columns managed by the engine rather than supplied by staging."""
        columns = [self.surrogate_key_column]
        if self.scd_type == SCDType.TYPE_2.value:
            columns.extend([
                self.effective_start_column,
                self.effective_end_column,
                self.is_current_column
            ])
        elif self.scd_type == SCDType.TYPE_3.value:
            columns.extend(self.previous_column(c) for c in self.previous_value_columns)
        return columns


@dataclass
class ProcessingMetrics:
    """Metrics for one reconciliation run."""

    records_processed: int = 0
    new_records: int = 0
    modified_records: int = 0
    unchanged_records: int = 0
    missing_from_staging: int = 0
    inserted_count: int = 0
    updated_count: int = 0
    expired_count: int = 0
    change_set_id: Optional[str] = None
    processing_time_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary."""
        return {
            "records_processed": self.records_processed,
            "new_records": self.new_records,
            "modified_records": self.modified_records,
            "unchanged_records": self.unchanged_records,
            "missing_from_staging": self.missing_from_staging,
            "inserted_count": self.inserted_count,
            "updated_count": self.updated_count,
            "expired_count": self.expired_count,
            "change_set_id": self.change_set_id,
            "processing_time_seconds": self.processing_time_seconds
        }


@dataclass
class ValidationResult:
    """Result of data validation."""

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, error: str) -> None:
        """Add an error message."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a warning message."""
        self.warnings.append(warning)

    def to_dict(self) -> Dict[str, Any]:
        """Convert validation result to dictionary."""
        return {
            "is_valid": self.is_valid,
            "errors": self.errors,
            "warnings": self.warnings
        }
