"""
Utility functions for dimensional reconciliation library.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


def ensure_utc(value: Optional[datetime] = None) -> datetime:
    """
    Normalize a timestamp to timezone-aware UTC.

    Args:
        value: Timestamp to normalize; naive values are taken as UTC.
            Defaults to the current time.

    Returns:
        Timezone-aware UTC datetime
    """
    if value is None:
        return datetime.now(timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def find_missing_columns(row: Mapping[str, Any], required_columns: Iterable[str]) -> List[str]:
    """
    Return the required columns absent from a row, in declaration order.

    Args:
        row: Flat mapping of column name to value
        required_columns: Column names that must be present

    Returns:
        List of missing column names
    """
    return [c for c in required_columns if c not in row]


def natural_key_sort_key(natural_key: Tuple[Any, ...]) -> Tuple[Tuple[str, Any], ...]:
    """Sort key that keeps natural keys of mixed value types orderable."""
    return tuple((type(value).__name__, value) for value in natural_key)


def format_natural_key(natural_key: Tuple[Any, ...]) -> str:
    """Render a natural key for log and error messages."""
    if len(natural_key) == 1:
        return repr(natural_key[0])
    return "(" + ", ".join(repr(v) for v in natural_key) + ")"


def log_change_set_info(change_set, name: str) -> None:
    """
    Log change set information for debugging.

    Args:
        change_set: ChangeSet to describe
        name: Name for logging
    """
    logger.info(f"{name} - Inserts: {len(change_set.inserts)}, "
                f"Updates: {len(change_set.updates)}, "
                f"Expirations: {len(change_set.expirations)}")
    logger.debug(f"{name} - Run time: {change_set.run_time}, "
                 f"Snapshot version: {change_set.snapshot_version}")
