"""
Paginated query execution against a source connector.
"""

import logging
from typing import Any, Dict, List

from ..connectors.base import SourceConnector
from ..exceptions import PaginationError

logger = logging.getLogger(__name__)


async def fetch_all(source: SourceConnector, query: str) -> List[Dict[str, Any]]:
    """
    Run ``query`` and follow page cursors until the source reports completion.

    Records are returned in page order. Any failing request, or a page that is
    not done but carries no cursor, aborts the whole fetch; records from
    earlier pages are discarded.
    """
    page = await source.execute_query(query)
    records: List[Dict[str, Any]] = list(page.records)
    pages = 1

    while not page.done:
        if not page.next_records_url:
            raise PaginationError(
                f"Page {pages} is not done but carries no cursor; {len(records)} records fetched so far"
            )
        cursor = page.next_records_url
        try:
            page = await source.fetch_next_page(cursor)
        except PaginationError:
            raise
        except Exception as e:
            raise PaginationError(f"Failed to fetch page {pages + 1} ({cursor}): {e}") from e
        records.extend(page.records)
        pages += 1

    logger.debug(f"Fetched {len(records)} records in {pages} page(s)")
    return records
