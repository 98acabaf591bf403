"""
Lookup of existing destination rows by their primary field.
"""

import logging
from typing import List

from ..connectors.base import DestinationConnector

logger = logging.getLogger(__name__)


class DestinationIndex(dict):
    """
    Primary value -> destination record id.

    Rows whose primary field is empty cannot be matched by any source record;
    their ids are kept in ``unkeyed`` so the mirror still removes them.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.unkeyed: List[str] = []


async def build_destination_index(destination: DestinationConnector, table: str,
                                  primary_field: str) -> DestinationIndex:
    """
    Map each row's ``primary_field`` value to its destination record id.

    Every row of the table is read. Rows with an empty primary field go to
    ``unkeyed``; if two rows share a value, the later one wins.
    """
    rows = await destination.list_all(table)

    index = DestinationIndex()
    for row in rows:
        key = row.fields.get(primary_field)
        if key is None or key == "":
            logger.debug(f"Row {row.id} in {table} has no '{primary_field}'")
            index.unkeyed.append(row.id)
            continue
        if key in index:
            logger.warning(f"Duplicate {primary_field} '{key}' in {table}: rows {index[key]} and {row.id}")
        index[key] = row.id

    if index.unkeyed:
        logger.warning(
            f"{len(index.unkeyed)} rows of {table} have no '{primary_field}' and cannot match a source record"
        )
    logger.info(f"Indexed {len(index)} existing rows of {table} by '{primary_field}'")
    return index
