"""
Unit tests for SCDValidator.
"""

import pytest
from datetime import datetime, timezone

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from dimensional_reconciliation.reconciliation.validators import SCDValidator
from dimensional_reconciliation.common.config import SCDConfig
from dimensional_reconciliation.common.exceptions import ConfigurationError
from dimensional_reconciliation.common.models import DimensionRecord, StagingRecord

START = datetime(2024, 1, 1, tzinfo=timezone.utc)
END = datetime(2024, 2, 1, tzinfo=timezone.utc)


class TestSCDValidator:
    """Test cases for SCDValidator."""

    @pytest.fixture
    def scd_config(self):
        """Create SCD configuration for testing."""
        return SCDConfig(
            target_table="test.customer_dim",
            natural_key_columns=["customer_id"],
            tracked_columns=["name", "age"],
            attribute_types={"age": int}
        )

    @pytest.fixture
    def validator(self, scd_config):
        return SCDValidator(scd_config)

    def test_init(self, scd_config):
        validator = SCDValidator(scd_config)

        assert validator.config == scd_config

    def test_validate_staging_success(self, validator):
        result = validator.validate_staging([
            StagingRecord(("1",), {"name": "John Doe", "age": 40}),
            StagingRecord(("2",), {"name": "Jane Smith", "age": None}),
        ])

        assert result.is_valid is True
        assert len(result.errors) == 0
        assert len(result.warnings) == 0

    def test_validate_staging_missing_columns(self, validator):
        """Test that an absent tracked attribute is a configuration error."""
        with pytest.raises(ConfigurationError, match=r"Missing tracked columns in staging: \['age'\]") as exc_info:
            validator.validate_staging([StagingRecord(("1",), {"name": "John Doe"})])

        assert exc_info.value.config_field == "tracked_columns"

    def test_validate_staging_type_mismatch(self, validator):
        with pytest.raises(ConfigurationError, match="do not match declared attribute types"):
            validator.validate_staging([StagingRecord(("1",), {"name": "John Doe", "age": "forty"})])

    def test_validate_staging_key_length_mismatch(self, validator):
        with pytest.raises(ConfigurationError, match="does not match key columns"):
            validator.validate_staging([StagingRecord(("1", "x"), {"name": "John Doe", "age": 1})])

    def test_validate_staging_null_keys(self, validator):
        result = validator.validate_staging([
            StagingRecord((None,), {"name": "John Doe", "age": 40}),
            StagingRecord(("2",), {"name": "Jane Smith", "age": 30}),
        ])

        assert result.is_valid is False
        assert "Found 1 records with null natural key values in staging" in result.errors

    def test_validate_staging_empty(self, validator):
        result = validator.validate_staging([])

        assert result.is_valid is True
        assert result.warnings == ["Staging snapshot is empty"]

    def test_validate_dimension_success(self, validator):
        result = validator.validate_dimension([
            DimensionRecord(("1",), {"name": "John", "age": 40}, start_time=START,
                            end_time=END, is_active=False),
            DimensionRecord(("1",), {"name": "John Doe", "age": 40}, start_time=END),
        ])

        assert result.is_valid is True

    def test_validate_dimension_window_mismatch(self, validator):
        """Test that the end time must be null exactly when a version is active."""
        result = validator.validate_dimension([
            DimensionRecord(("1",), {"name": "John", "age": 40}, start_time=START, end_time=END),
            DimensionRecord(("2",), {"name": "Jane", "age": 30}, start_time=START, is_active=False),
        ])

        assert result.is_valid is False
        assert "Active version of '1' has an end time" in result.errors
        assert "Expired version of '2' has no end time" in result.errors

    def test_validate_dimension_missing_start(self, validator):
        result = validator.validate_dimension([
            DimensionRecord(("1",), {"name": "John", "age": 40}),
        ])

        assert result.is_valid is True
        assert result.warnings == ["Version of '1' has no start time"]

    def test_validate_dimension_type1_skips_window(self):
        config = SCDConfig("test.customer_dim", ["customer_id"], ["name"], scd_type=1)
        validator = SCDValidator(config)

        result = validator.validate_dimension([DimensionRecord(("1",), {"name": "John"}, end_time=END)])

        assert result.is_valid is True
        assert result.warnings == []

    def test_validation_result_to_dict(self, validator):
        result = validator.validate_staging([])

        assert result.to_dict() == {
            "is_valid": True,
            "errors": [],
            "warnings": ["Staging snapshot is empty"]
        }
