"""
SCD Type 1: in-place overwrite, no history.
"""

from datetime import datetime
from typing import Optional
import logging

from ..common.config import SCDType
from ..common.models import AttributeDelta, ChangeSet, DimensionRecord
from ..common.utils import ensure_utc
from ..comparison.change_classifier import Classification
from .base_reconciler import BaseReconciler

logger = logging.getLogger(__name__)


class Type1Reconciler(BaseReconciler):
    """
    Overwrites modified records and inserts new ones.

    The prior attribute set of a modified record is unrecoverable once the
    change set is applied.
    """

    scd_type = SCDType.TYPE_1

    def reconcile(self, classification: Classification, run_time: datetime,
                  snapshot_version: Optional[int] = None) -> ChangeSet:
        run_time = ensure_utc(run_time)

        updates = tuple(
            (item.natural_key, AttributeDelta(attributes=dict(item.staging.attributes)))
            for item in classification.modified
        )
        inserts = tuple(
            DimensionRecord(natural_key=item.natural_key,
                            attributes=dict(item.staging.attributes))
            for item in classification.new
        )

        logger.info(f"Type 1 change set: {len(updates)} overwrites, {len(inserts)} inserts")
        return ChangeSet(scd_type=self.scd_type, run_time=run_time, inserts=inserts,
                         updates=updates, snapshot_version=snapshot_version)
