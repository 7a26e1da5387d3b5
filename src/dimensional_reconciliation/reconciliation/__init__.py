"""
SCD reconciliation modules.
"""

from .scd_processor import SCDProcessor, get_reconciler
from .base_reconciler import BaseReconciler
from .type1_reconciler import Type1Reconciler
from .type2_reconciler import Type2Reconciler
from .type3_reconciler import Type3Reconciler
from .merge_executor import MergeExecutor
from .validators import SCDValidator

__all__ = [
    "SCDProcessor",
    "get_reconciler",
    "BaseReconciler",
    "Type1Reconciler",
    "Type2Reconciler",
    "Type3Reconciler",
    "MergeExecutor",
    "SCDValidator"
]
