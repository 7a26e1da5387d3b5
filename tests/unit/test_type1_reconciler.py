"""
Unit tests for Type1Reconciler.
"""

import pytest
from datetime import datetime, timezone

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from dimensional_reconciliation.comparison.change_classifier import ChangeClassifier
from dimensional_reconciliation.reconciliation.type1_reconciler import Type1Reconciler
from dimensional_reconciliation.common.config import SCDConfig, SCDType
from dimensional_reconciliation.common.exceptions import ConfigurationError
from dimensional_reconciliation.common.models import AttributeDelta, DimensionRecord, StagingRecord

RUN_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestType1Reconciler:
    """Test cases for Type1Reconciler."""

    @pytest.fixture
    def scd_config(self):
        return SCDConfig(
            target_table="test.customer_dim",
            natural_key_columns=["id"],
            tracked_columns=["city"],
            scd_type=1
        )

    @pytest.fixture
    def reconciler(self, scd_config):
        return Type1Reconciler(scd_config)

    def _classify(self, config, staging, dimension):
        return ChangeClassifier(config).classify(staging, dimension)

    def test_init_wrong_type(self):
        """Test that the reconciler refuses another SCD type's configuration."""
        config = SCDConfig("test.customer_dim", ["id"], ["city"], scd_type=2)

        with pytest.raises(ConfigurationError, match="requires scd_type 1"):
            Type1Reconciler(config)

    def test_overwrite_and_insert(self, scd_config, reconciler):
        """Dimension {id:1, city:NY}; staging {id:1, city:LA}, {id:2, city:SF}."""
        classification = self._classify(
            scd_config,
            [StagingRecord((1,), {"city": "LA"}), StagingRecord((2,), {"city": "SF"})],
            [DimensionRecord((1,), {"city": "NY"})]
        )

        change_set = reconciler.reconcile(classification, RUN_TIME)

        assert change_set.scd_type == SCDType.TYPE_1
        assert change_set.expirations == ()
        assert change_set.updates == (((1,), AttributeDelta(attributes={"city": "LA"})),)
        assert len(change_set.inserts) == 1
        assert change_set.inserts[0].natural_key == (2,)
        assert change_set.inserts[0].attributes == {"city": "SF"}
        assert change_set.inserts[0].start_time is None
        assert change_set.inserts[0].previous_attributes == {}

    def test_update_carries_full_attribute_set(self, reconciler):
        """Test that updates overwrite with the full staging attributes, not the diff."""
        config = SCDConfig("test.customer_dim", ["id"], ["city", "name"], scd_type=1)
        classification = self._classify(
            config,
            [StagingRecord((1,), {"city": "LA", "name": "Ada", "note": "x"})],
            [DimensionRecord((1,), {"city": "NY", "name": "Ada", "note": "y"})]
        )

        change_set = Type1Reconciler(config).reconcile(classification, RUN_TIME)

        _, delta = change_set.updates[0]
        assert delta.attributes == {"city": "LA", "name": "Ada", "note": "x"}

    def test_unchanged_and_missing_produce_nothing(self, scd_config, reconciler):
        classification = self._classify(
            scd_config,
            [StagingRecord((1,), {"city": "NY"})],
            [DimensionRecord((1,), {"city": "NY"}), DimensionRecord((9,), {"city": "TX"})]
        )

        change_set = reconciler.reconcile(classification, RUN_TIME)

        assert change_set.is_empty

    def test_snapshot_version_and_run_time(self, scd_config, reconciler):
        classification = self._classify(scd_config, [StagingRecord((1,), {"city": "NY"})], [])

        change_set = reconciler.reconcile(classification, datetime(2024, 3, 1, 12, 0), 7)

        assert change_set.snapshot_version == 7
        assert change_set.run_time == RUN_TIME
