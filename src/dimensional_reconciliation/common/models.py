"""
Record and change set models shared by the reconciliation components.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple
import uuid

from .config import SCDConfig, SCDType
from .exceptions import ConfigurationError
from .utils import find_missing_columns

NaturalKey = Tuple[Any, ...]
AttributeSet = Dict[str, Any]


def extract_natural_key(row: Mapping[str, Any], config: SCDConfig) -> NaturalKey:
    """
    Build the natural key of a flat row.

    Args:
        row: Flat mapping of column name to value
        config: Dimension configuration

    Returns:
        Tuple of key values ordered as the configured key columns
    """
    missing = find_missing_columns(row, config.natural_key_columns)
    if missing:
        raise ConfigurationError(f"Missing natural key columns: {missing}", "natural_key_columns")
    return tuple(row[c] for c in config.natural_key_columns)


@dataclass(frozen=True)
class StagingRecord:
    """Incoming snapshot row: authoritative current truth for one run."""

    natural_key: NaturalKey
    attributes: AttributeSet

    @classmethod
    def from_row(cls, row: Mapping[str, Any], config: SCDConfig) -> "StagingRecord":
        """Split a flat staging row into natural key and attributes."""
        natural_key = extract_natural_key(row, config)
        attributes = {k: v for k, v in row.items() if k not in config.natural_key_columns}
        return cls(natural_key=natural_key, attributes=attributes)


@dataclass(frozen=True)
class DimensionRecord:
    """
    Durable dimension row.

    Version metadata depends on the SCD type: Type 2 uses the effective
    window and active flag, Type 3 uses ``previous_attributes``, Type 1
    uses neither.
    """

    natural_key: NaturalKey
    attributes: AttributeSet
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    is_active: bool = True
    previous_attributes: AttributeSet = field(default_factory=dict)
    surrogate_key: Optional[Any] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any], config: SCDConfig) -> "DimensionRecord":
        """Build a dimension record from a flat table row."""
        natural_key = extract_natural_key(row, config)
        managed = set(config.natural_key_columns) | set(config.metadata_columns())
        attributes = {k: v for k, v in row.items() if k not in managed}

        version_meta: Dict[str, Any] = {}
        scd_type = config.scd_type_enum
        if scd_type == SCDType.TYPE_2:
            version_meta["start_time"] = row.get(config.effective_start_column)
            version_meta["end_time"] = row.get(config.effective_end_column)
            version_meta["is_active"] = bool(row.get(config.is_current_column))
        elif scd_type == SCDType.TYPE_3:
            version_meta["previous_attributes"] = {
                c: row.get(config.previous_column(c)) for c in config.previous_value_columns
            }

        return cls(natural_key=natural_key, attributes=attributes,
                   surrogate_key=row.get(config.surrogate_key_column), **version_meta)

    def to_row(self, config: SCDConfig) -> Dict[str, Any]:
        """Flatten the record into table columns."""
        row = dict(zip(config.natural_key_columns, self.natural_key))
        row.update(self.attributes)

        scd_type = config.scd_type_enum
        if scd_type == SCDType.TYPE_2:
            row[config.effective_start_column] = self.start_time
            row[config.effective_end_column] = self.end_time
            row[config.is_current_column] = self.is_active
        elif scd_type == SCDType.TYPE_3:
            for attribute in config.previous_value_columns:
                row[config.previous_column(attribute)] = self.previous_attributes.get(attribute)

        if self.surrogate_key is not None:
            row[config.surrogate_key_column] = self.surrogate_key
        return row


@dataclass(frozen=True)
class AttributeDelta:
    """
    New state for an overwritten record.

    ``attributes`` is the full new attribute set. ``previous_attributes``
    only lists the previous-value slots that change in this run.
    """

    attributes: AttributeSet
    previous_attributes: AttributeSet = field(default_factory=dict)


def _read_only(attributes: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(attributes))


def _read_only_record(record: DimensionRecord) -> DimensionRecord:
    return replace(record, natural_key=tuple(record.natural_key),
                   attributes=_read_only(record.attributes),
                   previous_attributes=_read_only(record.previous_attributes))


@dataclass(frozen=True)
class ChangeSet:
    """Computed, not yet applied effect of one reconciliation run."""

    scd_type: SCDType
    run_time: datetime
    inserts: Tuple[DimensionRecord, ...] = ()
    updates: Tuple[Tuple[NaturalKey, AttributeDelta], ...] = ()
    expirations: Tuple[NaturalKey, ...] = ()
    snapshot_version: Optional[int] = None
    change_set_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self):
        # Private read-only copies of the producer's records and deltas
        object.__setattr__(self, "inserts", tuple(_read_only_record(r) for r in self.inserts))
        object.__setattr__(self, "updates", tuple(
            (tuple(natural_key), AttributeDelta(_read_only(delta.attributes),
                                                _read_only(delta.previous_attributes)))
            for natural_key, delta in self.updates
        ))
        object.__setattr__(self, "expirations", tuple(tuple(k) for k in self.expirations))

    @property
    def is_empty(self) -> bool:
        """True when applying the change set would change nothing."""
        return not (self.inserts or self.updates or self.expirations)

    def to_dict(self) -> Dict[str, Any]:
        """Summarize the change set."""
        return {
            "change_set_id": self.change_set_id,
            "scd_type": self.scd_type.value,
            "run_time": self.run_time.isoformat(),
            "inserts": len(self.inserts),
            "updates": len(self.updates),
            "expirations": len(self.expirations),
            "snapshot_version": self.snapshot_version
        }


@dataclass(frozen=True)
class ApplyResult:
    """Counts of effects applied to the dimension store."""

    inserted_count: int = 0
    updated_count: int = 0
    expired_count: int = 0

    @classmethod
    def from_change_set(cls, change_set: ChangeSet) -> "ApplyResult":
        return cls(inserted_count=len(change_set.inserts),
                   updated_count=len(change_set.updates),
                   expired_count=len(change_set.expirations))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inserted_count": self.inserted_count,
            "updated_count": self.updated_count,
            "expired_count": self.expired_count
        }
