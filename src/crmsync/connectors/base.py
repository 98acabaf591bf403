"""
Base connector classes for the source and destination sides of a sync.

Connector methods are coroutines so the sync engine can keep several
destination requests in flight from a single event loop.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Any, Optional
from pydantic import BaseModel, Field
import logging

logger = logging.getLogger(__name__)

# Largest number of records a destination accepts in one bulk call
MAX_BATCH_SIZE = 10


class QueryPage(BaseModel):
    """One page of source query results."""
    records: List[Dict[str, Any]] = Field(default_factory=list)
    done: bool = True
    next_records_url: Optional[str] = None
    total_size: Optional[int] = None


class DestinationRecord(BaseModel):
    """A row of a destination table."""
    id: str
    fields: Dict[str, Any] = Field(default_factory=dict)


class SourceConnector(ABC):
    """Abstract base class for systems records are pulled from."""
    
    def __init__(self, **kwargs):
        self.config = kwargs
        logger.info(f"Initialized {self.__class__.__name__} connector")
    
    @abstractmethod
    async def authenticate(self) -> Dict[str, Any]:
        """Open a session with the service. Raises AuthenticationError when rejected."""
        pass
    
    @abstractmethod
    async def execute_query(self, query: str) -> QueryPage:
        """Run a query and return its first page."""
        pass
    
    @abstractmethod
    async def fetch_next_page(self, cursor: str) -> QueryPage:
        """Return the page a previous page's cursor points to."""
        pass
    
    @abstractmethod
    async def describe(self, object_name: str) -> List[str]:
        """Return the field names available on an object type."""
        pass


class DestinationConnector(ABC):
    """Abstract base class for tabular stores records are written to."""
    
    def __init__(self, **kwargs):
        self.config = kwargs
        logger.info(f"Initialized {self.__class__.__name__} connector")
    
    @abstractmethod
    async def authenticate(self) -> Dict[str, Any]:
        """Check the credentials against the service. Raises AuthenticationError when rejected."""
        pass
    
    @abstractmethod
    async def list_all(self, table: str) -> List[DestinationRecord]:
        """Return every row of ``table``, unfiltered."""
        pass
    
    async def bulk_create(self, table: str, records: List[Dict[str, Any]], typecast: bool = False) -> List[Any]:
        """
        Create up to ``MAX_BATCH_SIZE`` records.
        
        Args:
            table: Destination table
            records: Request bodies, each ``{"fields": {...}}``
            typecast: Let the destination coerce values to the field types
            
        Returns:
            The created records, with their new identifiers
        """
        self._check_batch(records)
        return await self._bulk_create(table, records, typecast)
    
    async def bulk_update(self, table: str, records: List[Dict[str, Any]], typecast: bool = False) -> List[Any]:
        """Update up to ``MAX_BATCH_SIZE`` records, each ``{"id": ..., "fields": {...}}``."""
        self._check_batch(records)
        return await self._bulk_update(table, records, typecast)
    
    async def bulk_delete(self, table: str, record_ids: List[str]) -> List[Any]:
        """Delete up to ``MAX_BATCH_SIZE`` records by identifier."""
        self._check_batch(record_ids)
        return await self._bulk_delete(table, record_ids)
    
    @staticmethod
    def _check_batch(items: List[Any]) -> None:
        if len(items) > MAX_BATCH_SIZE:
            raise ValueError(f"At most {MAX_BATCH_SIZE} records per bulk call, got {len(items)}")
    
    @abstractmethod
    async def _bulk_create(self, table: str, records: List[Dict[str, Any]], typecast: bool) -> List[Any]:
        """Service-specific create implementation."""
        pass
    
    @abstractmethod
    async def _bulk_update(self, table: str, records: List[Dict[str, Any]], typecast: bool) -> List[Any]:
        """Service-specific update implementation."""
        pass
    
    @abstractmethod
    async def _bulk_delete(self, table: str, record_ids: List[str]) -> List[Any]:
        """Service-specific delete implementation."""
        pass
