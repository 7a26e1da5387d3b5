"""
Staging sources and dimension stores.
"""

from .base import StagingSource, DimensionStore
from .memory_store import InMemoryStagingSource, InMemoryDimensionStore
from .delta_store import DataFrameStagingSource, DeltaDimensionStore

__all__ = [
    "StagingSource",
    "DimensionStore",
    "InMemoryStagingSource",
    "InMemoryDimensionStore",
    "DataFrameStagingSource",
    "DeltaDimensionStore"
]
