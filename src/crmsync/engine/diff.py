"""
Reconciliation of fetched source records against existing destination rows.
"""

import logging
from typing import Any, Dict, List, Mapping, Sequence

from ..models.config import ObjectMapping
from ..models.sync import SyncDiff, SyncPayload
from .transforms import FieldTransformer

logger = logging.getLogger(__name__)


def compute_diff(records: Sequence[Mapping[str, Any]], mapping: ObjectMapping, index: Mapping[str, str],
                 unkeyed: Sequence[str] = ()) -> SyncDiff:
    """
    Classify source records as creates or updates and find stale destination rows.

    Args:
        records: Records fetched for ``mapping.object_name``
        mapping: The object's configuration
        index: Primary value -> destination record id for the object's table
        unkeyed: Ids of destination rows with an empty primary value

    Returns:
        SyncDiff. Updates carry the destination id of the row they replace.
        Deletes are the ids of every indexed row whose primary value was not
        fetched, followed by the unkeyed rows, so an empty fetch deletes the
        whole table unless ``mapping.delete_on_empty_source`` is off.
    """
    creates: List[SyncPayload] = []
    updates: List[SyncPayload] = []
    # dicts as ordered sets
    return_values: Dict[Any, None] = {}
    seen: Dict[Any, None] = {}
    primary = mapping.primary_source_field

    for record in records:
        fields = FieldTransformer.map_fields(record, mapping.fields)

        if mapping.return_field is not None:
            value = record[mapping.return_field]
            if value is not None:
                return_values[value] = None

        key = record[primary]
        if key in seen:
            logger.warning(f"Duplicate {mapping.object_name}.{primary} '{key}' in fetched records")
        seen[key] = None

        existing_id = index.get(key)
        if existing_id is not None:
            updates.append(SyncPayload(fields=fields, id=existing_id))
        else:
            creates.append(SyncPayload(fields=fields))

    stale = [record_id for key, record_id in index.items() if key not in seen]
    deletes = list(dict.fromkeys([*stale, *unkeyed]))

    if not records and deletes:
        if mapping.delete_on_empty_source:
            logger.warning(
                f"No {mapping.object_name} records matched; ALL {len(deletes)} rows of "
                f"table '{mapping.table}' will be deleted"
            )
        else:
            logger.warning(
                f"No {mapping.object_name} records matched; keeping the {len(deletes)} rows of "
                f"table '{mapping.table}' (delete_on_empty_source is off)"
            )
            deletes = []

    return SyncDiff(
        creates=creates,
        updates=updates,
        deletes=deletes,
        return_values=list(return_values),
    )
