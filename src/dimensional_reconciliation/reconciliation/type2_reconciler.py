"""
SCD Type 2: full history through row versioning.

Each natural key moves through the states ACTIVE -> EXPIRED per version.
A modified key gets its active version expired and a new active version
inserted in the same change set; both carry the run's single ``run_time``
so that batch boundaries can be reconstructed from the effective dates.
"""

from datetime import datetime
from typing import List, Optional
import logging

from ..common.config import SCDType
from ..common.exceptions import SCDProcessingError
from ..common.models import ChangeSet, DimensionRecord
from ..common.utils import ensure_utc, format_natural_key
from ..comparison.change_classifier import Classification
from .base_reconciler import BaseReconciler

logger = logging.getLogger(__name__)


class Type2Reconciler(BaseReconciler):
    """Expires modified versions and inserts their replacements."""

    scd_type = SCDType.TYPE_2

    def reconcile(self, classification: Classification, run_time: datetime,
                  snapshot_version: Optional[int] = None) -> ChangeSet:
        run_time = ensure_utc(run_time)
        self._check_effective_window(classification, run_time)

        expirations = tuple(item.natural_key for item in classification.modified)
        inserts = tuple(
            self._new_version(item.natural_key, item.staging.attributes, run_time)
            for item in classification.modified + classification.new
        )

        logger.info(f"Type 2 change set at {run_time.isoformat()}: "
                    f"{len(expirations)} expirations, {len(inserts)} new versions "
                    f"({len(classification.new)} first versions)")
        return ChangeSet(scd_type=self.scd_type, run_time=run_time, inserts=inserts,
                         expirations=expirations, snapshot_version=snapshot_version)

    def _new_version(self, natural_key, attributes, run_time: datetime) -> DimensionRecord:
        return DimensionRecord(natural_key=natural_key,
                               attributes=dict(attributes),
                               start_time=run_time,
                               end_time=None,
                               is_active=True)

    def _check_effective_window(self, classification: Classification, run_time: datetime) -> None:
        """Refuse to close a version before it started."""
        invalid: List[str] = []
        for item in classification.modified:
            start_time = item.current.start_time
            if start_time is not None and ensure_utc(start_time) > run_time:
                invalid.append(format_natural_key(item.natural_key))

        if invalid:
            message = (f"Run time {run_time.isoformat()} precedes the effective start of the "
                       f"active version for keys: {', '.join(invalid)}")
            logger.error(message)
            raise SCDProcessingError(message, "type2_reconcile")
