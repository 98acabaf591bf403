"""Airtable API client for table record operations."""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ...core.config import read_env
from ...exceptions import AirtableAPIError, AuthenticationError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.airtable.com/v0"

# Airtable rejects write requests carrying more records than this
MAX_RECORDS_PER_REQUEST = 10


class AirtableClient:
    """Client for the records endpoints of the Airtable REST API."""
    
    def __init__(self, api_key: str, base_id: str, base_url: str = DEFAULT_BASE_URL, timeout: int = 60):
        """Initialize the Airtable client.
        
        Args:
            api_key: Airtable personal access token
            base_id: Base holding the tables to sync into
            base_url: Base URL for the Airtable API
            timeout: Per-request timeout in seconds
        """
        self.api_key = api_key
        self.base_id = base_id
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        
        # Configure session with retries
        self.session = requests.Session()
        retry_strategy = Retry(
            total=3,
            status_forcelist=[429, 500, 502, 503, 504],
            backoff_factor=1
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)
        
        # Set default headers
        self.session.headers.update({
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json',
            'User-Agent': 'crmsync/1.0.0'
        })
    
    def _table_path(self, table: str) -> str:
        return f"{self.base_id}/{quote(table, safe='')}"
    
    def _make_request(self, method: str, path: str, params: Optional[Any] = None,
                      data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Make a request to the Airtable API.
        
        Args:
            method: HTTP method
            path: Path below the API base URL
            params: Query parameters (dict or list of pairs)
            data: JSON request body
            
        Returns:
            JSON response data
            
        Raises:
            AirtableAPIError: If the API request fails
        """
        url = f"{self.base_url}/{path}"
        
        try:
            logger.debug(f"Making {method} request to {url} with params: {params}")
            response = self.session.request(method, url, params=params, json=data, timeout=self.timeout)
            response.raise_for_status()
            
            return response.json()
            
        except requests.exceptions.RequestException as e:
            logger.error(f"Airtable API request failed: {e}")
            if getattr(e, 'response', None) is not None:
                if e.response.status_code in (401, 403):
                    raise AuthenticationError(f"Airtable rejected the API key: {e.response.text}") from e
                try:
                    error_data = e.response.json()
                except ValueError:
                    raise AirtableAPIError(f"HTTP {e.response.status_code}: {e.response.text}") from e
                raise AirtableAPIError(f"API Error: {error_data}") from e
            raise AirtableAPIError(f"Request failed: {str(e)}") from e
    
    def whoami(self) -> Dict[str, Any]:
        """Return the user or service account the API key belongs to."""
        data = self._make_request('GET', 'meta/whoami')
        logger.info(f"Airtable key accepted for {data.get('email') or data.get('id')}")
        return data
    
    @staticmethod
    def _check_batch(records: List[Any]) -> None:
        if len(records) > MAX_RECORDS_PER_REQUEST:
            raise ValueError(
                f"Airtable accepts at most {MAX_RECORDS_PER_REQUEST} records per request, got {len(records)}"
            )
    
    def list_records(self, table: str, page_size: int = 100) -> List[Dict[str, Any]]:
        """Get every record of a table, following the ``offset`` cursor.
        
        Args:
            table: Table name or id
            page_size: Records per page (Airtable caps this at 100)
            
        Returns:
            List of raw records, each with ``id`` and ``fields``
        """
        all_records: List[Dict[str, Any]] = []
        offset: Optional[str] = None
        page = 1
        
        while True:
            params: Dict[str, Any] = {'pageSize': page_size}
            if offset:
                params['offset'] = offset
            
            logger.debug(f"Fetching page {page} of table {table}")
            data = self._make_request('GET', self._table_path(table), params=params)
            all_records.extend(data.get('records') or [])
            
            offset = data.get('offset')
            if not offset:
                break
            page += 1
        
        logger.info(f"Retrieved {len(all_records)} records from Airtable table {table}")
        return all_records
    
    def create_records(self, table: str, records: List[Dict[str, Any]], typecast: bool = False) -> List[Dict[str, Any]]:
        """Create up to ten records. Each record is ``{"fields": {...}}``."""
        self._check_batch(records)
        data = self._make_request('POST', self._table_path(table), data={'records': records, 'typecast': typecast})
        return data.get('records') or []
    
    def update_records(self, table: str, records: List[Dict[str, Any]], typecast: bool = False) -> List[Dict[str, Any]]:
        """Update up to ten records. Each record is ``{"id": ..., "fields": {...}}``."""
        self._check_batch(records)
        data = self._make_request('PATCH', self._table_path(table), data={'records': records, 'typecast': typecast})
        return data.get('records') or []
    
    def delete_records(self, table: str, record_ids: List[str]) -> List[Dict[str, Any]]:
        """Delete up to ten records by id."""
        self._check_batch(record_ids)
        params = [('records[]', record_id) for record_id in record_ids]
        data = self._make_request('DELETE', self._table_path(table), params=params)
        return data.get('records') or []


def create_client_from_env(base_id: str) -> AirtableClient:
    """Create an Airtable client using environment variables.
    
    Args:
        base_id: Base holding the tables to sync into
        
    Raises:
        ConfigurationError: If AIRTABLE_API_KEY is not set
    """
    settings = read_env({'AIRTABLE_API_KEY': 'api_key'}, {'AIRTABLE_BASE_URL': ('base_url', DEFAULT_BASE_URL)})
    return AirtableClient(base_id=base_id, **settings)
