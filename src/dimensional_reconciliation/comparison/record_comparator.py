"""
Attribute-level change detection between staging and dimension records.
"""

from dataclasses import dataclass, field
from typing import Any, FrozenSet, Iterable, Mapping
import logging

from ..common.config import NullComparison

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComparisonResult:
    """Verdict of comparing two attribute sets."""

    changed: bool
    diff_attributes: FrozenSet[str] = field(default_factory=frozenset)


def values_equal(left: Any, right: Any,
                 null_comparison: NullComparison = NullComparison.DISTINCT) -> bool:
    """
    Compare two attribute values with explicit SQL null semantics.

    Under ``DISTINCT`` (the SQL ``=`` operator) a null on either side is
    never equal, so ``None`` vs ``None`` is a difference. Under
    ``NOT_DISTINCT`` two nulls are equal and a single null is not.
    Values whose equality cannot be evaluated count as different.

    Args:
        left: Staging value
        right: Stored value
        null_comparison: Null comparison mode

    Returns:
        True if the values are equal, False otherwise
    """
    if left is None or right is None:
        if null_comparison == NullComparison.NOT_DISTINCT:
            return left is None and right is None
        return False

    try:
        return bool(left == right)
    except (TypeError, ValueError):
        return False


class RecordComparator:
    """Compares a staging attribute set with a stored one."""

    def __init__(self, null_comparison: NullComparison = NullComparison.DISTINCT):
        """
        Initialize RecordComparator.

        Args:
            null_comparison: How two nulls compare
        """
        self.null_comparison = null_comparison

    def compare(self, staging: Mapping[str, Any], current: Mapping[str, Any],
                tracked_attributes: Iterable[str]) -> ComparisonResult:
        """
        Compare tracked attributes of two attribute sets.

        Untracked attributes never produce a change. An attribute absent
        from one side is compared as null.

        Args:
            staging: Incoming attribute set
            current: Stored attribute set
            tracked_attributes: Attribute names that participate

        Returns:
            ComparisonResult with the changed verdict and differing names
        """
        diff = set()
        for attribute in tracked_attributes:
            if not values_equal(staging.get(attribute), current.get(attribute),
                                self.null_comparison):
                diff.add(attribute)

        return ComparisonResult(changed=bool(diff), diff_attributes=frozenset(diff))
