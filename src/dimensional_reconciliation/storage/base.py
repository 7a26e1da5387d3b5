"""
Collaborator interfaces: where staging comes from and where the dimension lives.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..common.config import SCDConfig, SCDType
from ..common.models import ApplyResult, ChangeSet, DimensionRecord, StagingRecord


class StagingSource(ABC):
    """Read-only, single-pass source of the staging snapshot."""

    @abstractmethod
    def read_all(self) -> List[StagingRecord]:
        """Return every staging record of this run."""


class DimensionStore(ABC):
    """
    Durable dimension table.

    Implementations must apply a change set all-or-nothing and refuse a
    change set derived from a snapshot version other than the current one.
    """

    def __init__(self, config: SCDConfig):
        self.config = config

    @property
    @abstractmethod
    def snapshot_version(self) -> Optional[int]:
        """Version of the data returned by the most recent read."""

    @abstractmethod
    def read_active(self) -> List[DimensionRecord]:
        """Return active records only."""

    @abstractmethod
    def read_all(self) -> List[DimensionRecord]:
        """Return every record, including expired versions."""

    @abstractmethod
    def apply_atomically(self, change_set: ChangeSet) -> ApplyResult:
        """Apply a change set as a single atomic unit."""

    def read_current(self) -> List[DimensionRecord]:
        """Records that represent current truth: active ones for Type 2, all otherwise."""
        if self.config.scd_type_enum == SCDType.TYPE_2:
            return self.read_active()
        return self.read_all()
