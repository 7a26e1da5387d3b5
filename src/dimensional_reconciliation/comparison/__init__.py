"""
Change detection modules.
"""

from .record_comparator import RecordComparator, ComparisonResult, values_equal
from .change_classifier import ChangeClassifier, Classification, ClassifiedRecord, ChangeType

__all__ = [
    "RecordComparator",
    "ComparisonResult",
    "values_equal",
    "ChangeClassifier",
    "Classification",
    "ClassifiedRecord",
    "ChangeType"
]
