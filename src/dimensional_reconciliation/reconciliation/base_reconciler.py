"""
Shared behaviour of the SCD reconcilers.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from ..common.config import SCDConfig, SCDType
from ..common.exceptions import ConfigurationError
from ..common.models import ChangeSet
from ..comparison.change_classifier import Classification


class BaseReconciler(ABC):
    """Turns a classification into a change set for one SCD type."""

    scd_type: SCDType = None

    def __init__(self, config: SCDConfig):
        if config.scd_type_enum != self.scd_type:
            raise ConfigurationError(
                f"{type(self).__name__} requires scd_type {self.scd_type.value}, "
                f"got {config.scd_type}", "scd_type")
        self.config = config

    @abstractmethod
    def reconcile(self, classification: Classification, run_time: datetime,
                  snapshot_version: Optional[int] = None) -> ChangeSet:
        """
        Build the change set for one run.

        Args:
            classification: Per-key classification of the run
            run_time: Single logical timestamp shared by every effect of the run
            snapshot_version: Store version the classification was derived from

        Returns:
            Immutable ChangeSet
        """
