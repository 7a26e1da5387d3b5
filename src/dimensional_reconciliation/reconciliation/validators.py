"""
Data validation utilities for reconciliation.
"""

from typing import Iterable, List, Sequence, Union
import logging

from ..common.config import SCDConfig, SCDType, ValidationResult
from ..common.exceptions import ConfigurationError
from ..common.models import DimensionRecord, StagingRecord
from ..common.utils import format_natural_key

logger = logging.getLogger(__name__)

Record = Union[StagingRecord, DimensionRecord]


class SCDValidator:
    """Validates staging and dimension records before any comparison runs."""

    def __init__(self, config: SCDConfig):
        """
        Initialize SCDValidator with configuration.

        Args:
            config: Dimension configuration
        """
        self.config = config

    def validate_schema(self, records: Sequence[Record], source_name: str) -> None:
        """
        Check that records carry every tracked attribute with its declared type.

        Args:
            records: Staging or dimension records
            source_name: Name used in error messages

        Raises:
            ConfigurationError: A tracked attribute is missing or mistyped
        """
        self._validate_required_columns(records, source_name)
        self._validate_data_types(records, source_name)

    def validate_staging(self, records: Sequence[StagingRecord]) -> ValidationResult:
        """
        Validate staging data before classification.

        Args:
            records: Staging records

        Returns:
            ValidationResult with validation status and errors
        """
        self.validate_schema(records, "staging")

        result = ValidationResult(is_valid=True)
        self._validate_natural_keys(records, result, "staging")
        if not records:
            result.add_warning("Staging snapshot is empty")

        logger.info(f"Staging validation completed. Valid: {result.is_valid}, Errors: {len(result.errors)}")
        return result

    def validate_dimension(self, records: Sequence[DimensionRecord]) -> ValidationResult:
        """
        Validate dimension records read from the store.

        Args:
            records: Dimension records

        Returns:
            ValidationResult with validation status and errors
        """
        self.validate_schema(records, self.config.target_table)

        result = ValidationResult(is_valid=True)
        self._validate_natural_keys(records, result, self.config.target_table)
        if self.config.scd_type_enum == SCDType.TYPE_2:
            self._validate_version_metadata(records, result)

        logger.info(f"Dimension validation completed. Valid: {result.is_valid}, Errors: {len(result.errors)}")
        return result

    def _validate_required_columns(self, records: Iterable[Record], source_name: str) -> None:
        missing = set()
        for record in records:
            missing.update(c for c in self.config.tracked_columns if c not in record.attributes)
            if len(record.natural_key) != len(self.config.natural_key_columns):
                raise ConfigurationError(
                    f"Natural key {format_natural_key(record.natural_key)} in {source_name} does not "
                    f"match key columns {self.config.natural_key_columns}", "natural_key_columns")

        if missing:
            ordered = [c for c in self.config.tracked_columns if c in missing]
            logger.error(f"Missing tracked columns in {source_name}: {ordered}")
            raise ConfigurationError(f"Missing tracked columns in {source_name}: {ordered}",
                                     "tracked_columns")

    def _validate_data_types(self, records: Iterable[Record], source_name: str) -> None:
        """Values must match the declared attribute types; nulls always pass."""
        if not self.config.attribute_types:
            return

        mismatches: List[str] = []
        for record in records:
            for attribute, expected in self.config.attribute_types.items():
                value = record.attributes.get(attribute)
                if value is not None and not isinstance(value, expected):
                    mismatches.append(f"{attribute}={value!r} for key "
                                      f"{format_natural_key(record.natural_key)}")

        if mismatches:
            logger.error(f"Type mismatches in {source_name}: {mismatches[:10]}")
            raise ConfigurationError(
                f"Values in {source_name} do not match declared attribute types: "
                f"{'; '.join(mismatches[:10])}", "attribute_types")

    def _validate_natural_keys(self, records: Iterable[Record], result: ValidationResult,
                               source_name: str) -> None:
        null_keys = sum(1 for r in records if any(v is None for v in r.natural_key))
        if null_keys > 0:
            result.add_error(f"Found {null_keys} records with null natural key values in {source_name}")

    def _validate_version_metadata(self, records: Iterable[DimensionRecord],
                                   result: ValidationResult) -> None:
        """End time is null iff the version is active."""
        for record in records:
            key = format_natural_key(record.natural_key)
            if record.is_active and record.end_time is not None:
                result.add_error(f"Active version of {key} has an end time")
            elif not record.is_active and record.end_time is None:
                result.add_error(f"Expired version of {key} has no end time")
            if record.start_time is None:
                result.add_warning(f"Version of {key} has no start time")
