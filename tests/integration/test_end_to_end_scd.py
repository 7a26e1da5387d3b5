"""
End-to-end integration tests for SCD processing against the in-memory store.
"""

import pytest
from collections import Counter
from datetime import datetime, timedelta, timezone

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from dimensional_reconciliation.reconciliation.scd_processor import SCDProcessor
from dimensional_reconciliation.storage.memory_store import InMemoryDimensionStore, InMemoryStagingSource
from dimensional_reconciliation.common.config import SCDConfig
from dimensional_reconciliation.common.exceptions import ApplyFailure

START = datetime(2024, 1, 1, tzinfo=timezone.utc)
RUN_1 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
RUN_2 = RUN_1 + timedelta(days=1)


def _run(config, store, staging_rows, run_time):
    staging = InMemoryStagingSource(staging_rows, config)
    return SCDProcessor(config, staging, store).process_scd(run_time)


def _plan(config, store, staging_rows, run_time):
    staging = InMemoryStagingSource(staging_rows, config)
    return SCDProcessor(config, staging, store).plan(run_time)


class TestEndToEndSCD:
    """End-to-end integration tests for SCD processing."""

    def test_type1_overwrite_scenario(self):
        """Dimension {id:1, city:NY}; staging {id:1, city:LA}, {id:2, city:SF}."""
        config = SCDConfig("test.city_dim", ["id"], ["city"], scd_type=1)
        store = InMemoryDimensionStore.from_rows(config, [{"id": 1, "city": "NY", "surrogate_key": 1}])

        metrics = _run(config, store, [{"id": 1, "city": "LA"}, {"id": 2, "city": "SF"}], RUN_1)

        assert metrics.updated_count == 1
        assert metrics.inserted_count == 1
        assert store.rows() == [
            {"id": 1, "city": "LA", "surrogate_key": 1},
            {"id": 2, "city": "SF", "surrogate_key": 2},
        ]

    def test_type2_history_scenario(self):
        """Dimension active {id:1, city:NY}; staging {id:1, city:LA}."""
        config = SCDConfig("test.city_dim", ["id"], ["city"])
        store = InMemoryDimensionStore.from_rows(config, [
            {"id": 1, "city": "NY", "effective_start_ts_utc": START,
             "effective_end_ts_utc": None, "is_current": True, "surrogate_key": 1},
        ])

        _run(config, store, [{"id": 1, "city": "LA"}], RUN_1)

        assert store.rows() == [
            {"id": 1, "city": "NY", "effective_start_ts_utc": START,
             "effective_end_ts_utc": RUN_1, "is_current": False, "surrogate_key": 1},
            {"id": 1, "city": "LA", "effective_start_ts_utc": RUN_1,
             "effective_end_ts_utc": None, "is_current": True, "surrogate_key": 2},
        ]

    def test_type3_single_depth_history(self):
        """Two successive changes keep only the latest predecessor value."""
        config = SCDConfig("test.city_dim", ["id"], ["city"], scd_type=3,
                           previous_value_columns=["city"])
        store = InMemoryDimensionStore.from_rows(config, [
            {"id": 1, "city": "NY", "previous_city": None, "surrogate_key": 1},
        ])

        _run(config, store, [{"id": 1, "city": "LA"}], RUN_1)
        assert store.rows() == [{"id": 1, "city": "LA", "previous_city": "NY", "surrogate_key": 1}]

        _run(config, store, [{"id": 1, "city": "SF"}], RUN_2)
        assert store.rows() == [{"id": 1, "city": "SF", "previous_city": "LA", "surrogate_key": 1}]

    @pytest.mark.parametrize("scd_type,previous", [(1, []), (2, []), (3, ["city"])])
    def test_idempotence(self, scd_type, previous):
        """Re-running with identical staging yields an empty change set."""
        config = SCDConfig("test.customer_dim", ["id"], ["city", "segment"], scd_type=scd_type,
                           previous_value_columns=previous)
        store = InMemoryDimensionStore(config)
        staging_rows = [
            {"id": 1, "city": "NY", "segment": "A"},
            {"id": 2, "city": "SF", "segment": "B"},
        ]
        _run(config, store, staging_rows, RUN_1)
        staging_rows = [
            {"id": 1, "city": "LA", "segment": "A"},
            {"id": 2, "city": "SF", "segment": "B"},
            {"id": 3, "city": "TX", "segment": "C"},
        ]
        _run(config, store, staging_rows, RUN_2)

        _, change_set = _plan(config, store, staging_rows, RUN_2 + timedelta(days=1))

        assert change_set.is_empty

    def test_type2_single_active_across_runs(self):
        config = SCDConfig("test.customer_dim", ["id"], ["city"])
        store = InMemoryDimensionStore(config)
        runs = [
            [{"id": 1, "city": "NY"}, {"id": 2, "city": "SF"}],
            [{"id": 1, "city": "LA"}, {"id": 2, "city": "SF"}, {"id": 3, "city": "TX"}],
            [{"id": 1, "city": "BOS"}, {"id": 3, "city": "AUS"}],
        ]

        for offset, staging_rows in enumerate(runs):
            _run(config, store, staging_rows, RUN_1 + timedelta(days=offset))
            active = Counter(r.natural_key for r in store.read_all() if r.is_active)
            assert all(count == 1 for count in active.values())

        assert len([r for r in store.read_all() if r.natural_key == (1,)]) == 3
        assert [r.attributes["city"] for r in store.read_active()] == ["BOS", "SF", "AUS"]

    def test_missing_from_staging_left_untouched(self):
        config = SCDConfig("test.customer_dim", ["id"], ["city"])
        store = InMemoryDimensionStore(config)
        _run(config, store, [{"id": 1, "city": "NY"}, {"id": 2, "city": "SF"}], RUN_1)

        metrics = _run(config, store, [{"id": 1, "city": "NY"}], RUN_2)

        assert metrics.missing_from_staging == 1
        assert [r.natural_key for r in store.read_active()] == [(1,), (2,)]

    def test_null_attributes_distinct(self):
        """With SQL null semantics a null compared to a null counts as a change."""
        config = SCDConfig("test.customer_dim", ["id"], ["city"], scd_type=1)
        store = InMemoryDimensionStore.from_rows(config, [{"id": 1, "city": None}])

        classification, change_set = _plan(config, store, [{"id": 1, "city": None}], RUN_1)

        assert [r.natural_key for r in classification.modified] == [(1,)]
        assert len(change_set.updates) == 1

    def test_null_attributes_not_distinct(self):
        config = SCDConfig("test.customer_dim", ["id"], ["city"], scd_type=1,
                           null_comparison="not_distinct")
        store = InMemoryDimensionStore.from_rows(config, [{"id": 1, "city": None}])

        classification, change_set = _plan(config, store, [{"id": 1, "city": None}], RUN_1)

        assert [r.natural_key for r in classification.unchanged] == [(1,)]
        assert change_set.is_empty

    def test_concurrent_run_refused(self):
        """A change set planned against an outdated snapshot is rejected."""
        config = SCDConfig("test.customer_dim", ["id"], ["city"])
        store = InMemoryDimensionStore(config)
        staging = InMemoryStagingSource([{"id": 1, "city": "NY"}], config)
        stale_processor = SCDProcessor(config, staging, store)
        _, stale_change_set = stale_processor.plan(RUN_1)

        _run(config, store, [{"id": 2, "city": "SF"}], RUN_1)

        with pytest.raises(ApplyFailure, match="derived from version 0"):
            stale_processor.executor.apply(stale_change_set)
        assert [r.natural_key for r in store.read_active()] == [(2,)]
