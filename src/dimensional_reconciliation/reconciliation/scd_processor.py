"""
Main SCD processor with clean separation of concerns.
"""

from datetime import datetime
from typing import Optional, Tuple
import logging
import time

from ..common.config import SCDConfig, SCDType, ProcessingMetrics
from ..common.exceptions import (
    DimensionalReconciliationError,
    SCDProcessingError,
    SCDValidationError
)
from ..common.models import ChangeSet
from ..common.utils import ensure_utc, log_change_set_info
from ..comparison.change_classifier import ChangeClassifier, Classification
from ..storage.base import DimensionStore, StagingSource
from .base_reconciler import BaseReconciler
from .merge_executor import MergeExecutor
from .type1_reconciler import Type1Reconciler
from .type2_reconciler import Type2Reconciler
from .type3_reconciler import Type3Reconciler
from .validators import SCDValidator

logger = logging.getLogger(__name__)

RECONCILERS = {
    SCDType.TYPE_1: Type1Reconciler,
    SCDType.TYPE_2: Type2Reconciler,
    SCDType.TYPE_3: Type3Reconciler,
}


def get_reconciler(config: SCDConfig) -> BaseReconciler:
    """Build the reconciler matching the configured SCD type."""
    return RECONCILERS[config.scd_type_enum](config)


class SCDProcessor:
    """Runs one reconciliation: read, validate, classify, reconcile, apply."""

    def __init__(self, config: SCDConfig, staging_source: StagingSource,
                 dimension_store: DimensionStore, executor: Optional[MergeExecutor] = None):
        """
        Initialize SCDProcessor with configuration and collaborators.

        Args:
            config: Dimension configuration
            staging_source: Source of the staging snapshot
            dimension_store: Store holding the dimension table
            executor: Merge executor; one bound to the store is created when omitted
        """
        self.config = config
        self.staging_source = staging_source
        self.dimension_store = dimension_store

        # Initialize components
        self.validator = SCDValidator(config)
        self.classifier = ChangeClassifier(config)
        self.reconciler = get_reconciler(config)
        self.executor = executor or MergeExecutor(dimension_store)

        logger.info(f"Initialized SCDProcessor (type {config.scd_type}) for table: {config.target_table}")

    def plan(self, run_time: Optional[datetime] = None) -> Tuple[Classification, ChangeSet]:
        """
        Derive the change set of a run without applying it.

        Args:
            run_time: Logical timestamp of the run; defaults to now (UTC)

        Returns:
            Tuple of classification and change set
        """
        run_time = ensure_utc(run_time)

        # Step 1: Read and validate staging
        staging = self.staging_source.read_all()
        logger.info(f"Read {len(staging)} staging records")
        self._raise_if_invalid(self.validator.validate_staging(staging))

        # Step 2: Read and validate the current dimension population
        current = self.dimension_store.read_current()
        snapshot_version = self.dimension_store.snapshot_version
        logger.info(f"Read {len(current)} current records from {self.config.target_table} "
                    f"at version {snapshot_version}")
        self._raise_if_invalid(self.validator.validate_dimension(current))

        # Step 3: Classify
        classification = self.classifier.classify(staging, current)

        # Step 4: Build the change set
        change_set = self.reconciler.reconcile(classification, run_time, snapshot_version)
        log_change_set_info(change_set, "Planned change set")
        return classification, change_set

    def process_scd(self, run_time: Optional[datetime] = None) -> ProcessingMetrics:
        """
        Main entry point for SCD processing.

        Args:
            run_time: Logical timestamp of the run; defaults to now (UTC)

        Returns:
            ProcessingMetrics: Processing metrics and status
        """
        logger.info("🚀 ENTER: process_scd")
        start_time = time.time()

        try:
            classification, change_set = self.plan(run_time)
            apply_result = self.executor.apply(change_set)
        except DimensionalReconciliationError:
            logger.info("🏁 EXIT: process_scd (with error)")
            raise
        except Exception as e:
            logger.error(f"SCD processing failed: {str(e)}")
            logger.info("🏁 EXIT: process_scd (with error)")
            raise SCDProcessingError(f"SCD processing failed: {str(e)}") from e

        counts = classification.counts()
        metrics = ProcessingMetrics(
            records_processed=counts["unchanged"] + counts["new"] + counts["modified"],
            new_records=counts["new"],
            modified_records=counts["modified"],
            unchanged_records=counts["unchanged"],
            missing_from_staging=counts["missing_from_staging"],
            inserted_count=apply_result.inserted_count,
            updated_count=apply_result.updated_count,
            expired_count=apply_result.expired_count,
            change_set_id=change_set.change_set_id,
            processing_time_seconds=time.time() - start_time
        )

        logger.info(f"SCD processing completed successfully. Metrics: {metrics.to_dict()}")
        logger.info("🏁 EXIT: process_scd")
        return metrics

    def _raise_if_invalid(self, validation_result) -> None:
        if not validation_result.is_valid:
            logger.error(f"Validation failed: {validation_result.errors}")
            raise SCDValidationError(f"Validation failed: {validation_result.errors}",
                                     validation_result.errors)
        for warning in validation_result.warnings:
            logger.warning(warning)
