"""
Models for crmsync.
"""

from .config import SyncConfig, ObjectMapping, load_sync_config
from .sync import (
    SyncExecution, SyncStatus, SyncOperation, SyncPayload, SyncDiff, StageResult
)

__all__ = [
    "SyncConfig",
    "ObjectMapping",
    "load_sync_config",
    "SyncExecution",
    "SyncStatus",
    "SyncOperation",
    "SyncPayload",
    "SyncDiff",
    "StageResult",
]
