"""
Single atomic application of a change set to the dimension store.
"""

from collections import Counter, OrderedDict
import logging
import time

from ..common.config import SCDType
from ..common.exceptions import (
    ApplyFailure,
    ChangeSetAlreadyAppliedError,
    SCDProcessingError
)
from ..common.models import ApplyResult, ChangeSet
from ..common.utils import format_natural_key, log_change_set_info
from ..storage.base import DimensionStore

logger = logging.getLogger(__name__)

APPLIED_HISTORY_SIZE = 1024


class MergeExecutor:
    """
    Applies each change set at most once, through exactly one store call.

    The executor remembers the ids of the change sets it applied recently
    and refuses them early. The durable guard is the store's snapshot
    version check: once a change set is applied the store has moved past
    the version it was derived from, so no executor can apply it again.
    Non-empty change sets must therefore carry a snapshot version.
    """

    def __init__(self, store: DimensionStore):
        """
        Initialize MergeExecutor with the target store.

        Args:
            store: Dimension store providing the atomic apply primitive
        """
        self.store = store
        self._applied: "OrderedDict[str, None]" = OrderedDict()

    def apply(self, change_set: ChangeSet) -> ApplyResult:
        """
        Apply a change set as one all-or-nothing unit.

        Args:
            change_set: Change set produced by a reconciler

        Returns:
            ApplyResult with inserted, updated and expired counts

        Raises:
            ChangeSetAlreadyAppliedError: The change set was applied before
            SCDProcessingError: The change set has no snapshot version or breaks Type 2 pairing
            ApplyFailure: The store rejected or failed the apply
        """
        logger.info(f"🚀 ENTER: apply {change_set.change_set_id}")
        if change_set.change_set_id in self._applied:
            raise ChangeSetAlreadyAppliedError(
                f"Change set {change_set.change_set_id} has already been applied",
                change_set.change_set_id)

        if change_set.is_empty:
            logger.info("Empty change set, nothing to apply")
            self._mark_applied(change_set.change_set_id)
            return ApplyResult()

        if change_set.snapshot_version is None:
            message = (f"Change set {change_set.change_set_id} carries no snapshot version; "
                       f"plan it from a store read before applying")
            logger.error(message)
            raise SCDProcessingError(message, "merge_snapshot_version")

        if change_set.scd_type == SCDType.TYPE_2:
            self._check_pairing(change_set)

        log_change_set_info(change_set, f"Applying to {self.store.config.target_table}")
        start_time = time.time()
        try:
            result = self.store.apply_atomically(change_set)
        except ApplyFailure:
            logger.error(f"Store rejected change set {change_set.change_set_id}")
            raise
        except Exception as e:
            logger.error(f"Atomic apply failed: {str(e)}")
            raise ApplyFailure(f"Atomic apply of change set {change_set.change_set_id} failed: {str(e)}",
                               change_set_id=change_set.change_set_id) from e

        self._mark_applied(change_set.change_set_id)
        logger.info(f"✅ Applied in {time.time() - start_time:.2f}s: {result.to_dict()}")
        logger.info(f"🏁 EXIT: apply {change_set.change_set_id}")
        return result

    def _mark_applied(self, change_set_id: str) -> None:
        self._applied[change_set_id] = None
        while len(self._applied) > APPLIED_HISTORY_SIZE:
            self._applied.popitem(last=False)

    def _check_pairing(self, change_set: ChangeSet) -> None:
        """Every expired key must be re-inserted in the same change set, exactly once."""
        inserted = Counter(record.natural_key for record in change_set.inserts)
        expired = Counter(change_set.expirations)

        problems = []
        for natural_key, count in expired.items():
            if count > 1:
                problems.append(f"{format_natural_key(natural_key)} expired {count} times")
            if inserted.get(natural_key, 0) != 1:
                problems.append(f"{format_natural_key(natural_key)} expired without a single replacement")
        for natural_key, count in inserted.items():
            if count > 1:
                problems.append(f"{format_natural_key(natural_key)} inserted {count} times")

        if problems:
            message = f"Type 2 change set {change_set.change_set_id} is not paired: {'; '.join(problems)}"
            logger.error(message)
            raise SCDProcessingError(message, "merge_pairing")
