"""
Models for sync diffs, per-object stage results and run tracking.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class SyncStatus(str, Enum):
    """Status of a sync execution."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class SyncOperation(str, Enum):
    """Mutation kinds applied to the destination."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class SyncPayload(BaseModel):
    """A destination-shaped record. Carries ``id`` only when it updates an existing row."""
    fields: Dict[str, Any] = Field(default_factory=dict)
    id: Optional[str] = None

    def to_request(self) -> Dict[str, Any]:
        """Airtable request body for this record."""
        body: Dict[str, Any] = {"fields": dict(self.fields)}
        if self.id is not None:
            body["id"] = self.id
        return body


class SyncDiff(BaseModel):
    """Create/update/delete sets computed for one object."""
    creates: List[SyncPayload] = Field(default_factory=list)
    updates: List[SyncPayload] = Field(default_factory=list)
    deletes: List[str] = Field(default_factory=list)
    return_values: List[Any] = Field(default_factory=list)


class StageResult(BaseModel):
    """Immutable outcome of syncing one object; feeds the next stage."""
    model_config = ConfigDict(frozen=True)

    object_name: str
    table: str
    query: Optional[str] = None
    fetched: int = 0
    created: int = 0
    updated: int = 0
    deleted: int = 0
    return_values: Optional[List[Any]] = Field(
        None, description="Values for the next stage's filter; None when the object declares no return_field"
    )
    dry_run: bool = False
    started_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
    execution_time_seconds: Optional[float] = None


class SyncExecution(BaseModel):
    """Represents one sync run across all configured objects."""
    id: str
    base_id: str
    status: SyncStatus = SyncStatus.RUNNING
    started_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
    execution_time_seconds: Optional[float] = None
    stage_results: List[StageResult] = Field(default_factory=list)
    error_message: Optional[str] = None
    dry_run: bool = False

    def mark_completed(self) -> None:
        self.status = SyncStatus.COMPLETED
        self._finish()

    def mark_failed(self, error_message: str) -> None:
        self.status = SyncStatus.FAILED
        self.error_message = error_message
        self._finish()

    def _finish(self) -> None:
        self.completed_at = datetime.utcnow()
        self.execution_time_seconds = (self.completed_at - self.started_at).total_seconds()

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of the execution."""
        return {
            "id": self.id,
            "base_id": self.base_id,
            "status": self.status.value,
            "dry_run": self.dry_run,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "execution_time_seconds": self.execution_time_seconds,
            "error_message": self.error_message,
            "objects": {
                result.object_name: {
                    "fetched": result.fetched,
                    "created": result.created,
                    "updated": result.updated,
                    "deleted": result.deleted,
                }
                for result in self.stage_results
            },
        }
