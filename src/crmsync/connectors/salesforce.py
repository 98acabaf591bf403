"""
Salesforce connector: the source side of a sync.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from ..integrations.salesforce.client import SalesforceClient, create_client_from_env
from .base import SourceConnector, QueryPage

logger = logging.getLogger(__name__)


class SalesforceConnector(SourceConnector):
    """
    Runs SOQL through a blocking ``SalesforceClient`` on worker threads.
    """
    
    def __init__(self, client: Optional[SalesforceClient] = None, **kwargs):
        super().__init__(**kwargs)
        self.client = client or create_client_from_env()
    
    async def authenticate(self) -> Dict[str, Any]:
        return await asyncio.to_thread(self.client.login)
    
    async def execute_query(self, query: str) -> QueryPage:
        data = await asyncio.to_thread(self.client.query, query)
        return self._to_page(data)
    
    async def fetch_next_page(self, cursor: str) -> QueryPage:
        logger.info("Fetching next page of records")
        data = await asyncio.to_thread(self.client.query_more, cursor)
        return self._to_page(data)
    
    async def describe(self, object_name: str) -> List[str]:
        data = await asyncio.to_thread(self.client.describe, object_name)
        return [f["name"] for f in data.get("fields", [])]
    
    @staticmethod
    def _to_page(data: Dict[str, Any]) -> QueryPage:
        records = []
        for record in data.get("records") or []:
            # drop the per-record type/url metadata Salesforce attaches
            records.append({k: v for k, v in record.items() if k != "attributes"})
        return QueryPage(
            records=records,
            done=data.get("done", True),
            next_records_url=data.get("nextRecordsUrl"),
            total_size=data.get("totalSize"),
        )
