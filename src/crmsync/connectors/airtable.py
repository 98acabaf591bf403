"""
Airtable connector: the destination side of a sync.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from ..integrations.airtable.client import AirtableClient, create_client_from_env
from .base import DestinationConnector, DestinationRecord

logger = logging.getLogger(__name__)


class AirtableConnector(DestinationConnector):
    """
    Writes to one Airtable base through a blocking ``AirtableClient`` on worker threads.
    """
    
    def __init__(self, client: Optional[AirtableClient] = None, base_id: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        if client is None:
            if not base_id:
                raise ValueError("AirtableConnector requires a client or a base_id")
            client = create_client_from_env(base_id)
        self.client = client
    
    async def authenticate(self) -> Dict[str, Any]:
        return await asyncio.to_thread(self.client.whoami)
    
    async def list_all(self, table: str) -> List[DestinationRecord]:
        rows = await asyncio.to_thread(self.client.list_records, table)
        return [DestinationRecord(id=row["id"], fields=row.get("fields") or {}) for row in rows]
    
    async def _bulk_create(self, table: str, records: List[Dict[str, Any]], typecast: bool) -> List[Any]:
        return await asyncio.to_thread(self.client.create_records, table, records, typecast)
    
    async def _bulk_update(self, table: str, records: List[Dict[str, Any]], typecast: bool) -> List[Any]:
        return await asyncio.to_thread(self.client.update_records, table, records, typecast)
    
    async def _bulk_delete(self, table: str, record_ids: List[str]) -> List[Any]:
        return await asyncio.to_thread(self.client.delete_records, table, record_ids)
