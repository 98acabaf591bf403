"""
Sync engine for mirroring source objects into destination tables.
"""

from .sync import SyncEngine
from .batch import BatchApplier
from .diff import compute_diff
from .fetch import fetch_all
from .index import build_destination_index
from .query import build_query
from .transforms import FieldTransformer

__all__ = [
    "SyncEngine",
    "BatchApplier",
    "compute_diff",
    "fetch_all",
    "build_destination_index",
    "build_query",
    "FieldTransformer",
]
