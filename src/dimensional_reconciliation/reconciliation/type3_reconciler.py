"""
SCD Type 3: overwrite while keeping one previous value per attribute.

This is a deliberately lossy alternative to Type 2. Only the value
immediately before the latest change survives; a second change to the
same attribute discards the older previous value.
"""

from datetime import datetime
from typing import Optional
import logging

from ..common.config import SCDType
from ..common.models import AttributeDelta, ChangeSet, DimensionRecord
from ..common.utils import ensure_utc
from ..comparison.change_classifier import Classification, ClassifiedRecord
from .base_reconciler import BaseReconciler

logger = logging.getLogger(__name__)


class Type3Reconciler(BaseReconciler):
    """Overwrites modified records after shifting changed values into previous-value slots."""

    scd_type = SCDType.TYPE_3

    def reconcile(self, classification: Classification, run_time: datetime,
                  snapshot_version: Optional[int] = None) -> ChangeSet:
        run_time = ensure_utc(run_time)

        updates = tuple(
            (item.natural_key, self._shift_previous_values(item))
            for item in classification.modified
        )
        inserts = tuple(
            DimensionRecord(natural_key=item.natural_key,
                            attributes=dict(item.staging.attributes),
                            previous_attributes={c: None for c in self.config.previous_value_columns})
            for item in classification.new
        )

        shifted = sum(len(delta.previous_attributes) for _, delta in updates)
        logger.info(f"Type 3 change set: {len(updates)} overwrites ({shifted} values shifted), "
                    f"{len(inserts)} inserts")
        return ChangeSet(scd_type=self.scd_type, run_time=run_time, inserts=inserts,
                         updates=updates, snapshot_version=snapshot_version)

    def _shift_previous_values(self, item: ClassifiedRecord) -> AttributeDelta:
        """Only diffed attributes with a previous slot are shifted; other slots stay as stored."""
        previous = {
            attribute: item.current.attributes.get(attribute)
            for attribute in self.config.previous_value_columns
            if attribute in item.diff_attributes
        }
        return AttributeDelta(attributes=dict(item.staging.attributes),
                              previous_attributes=previous)
