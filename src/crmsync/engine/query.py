"""
SOQL construction for object syncs.
"""

from typing import Iterable, Mapping, Optional

from ..exceptions import ConfigurationError


def build_query(fields: Mapping[str, str], object_name: str, where_clause: Optional[str] = None,
                object_ids: Optional[Iterable[str]] = None, filter_field: Optional[str] = None) -> str:
    """
    Build the SOQL query pulling one object's mapped fields.

    Args:
        fields: Field mapping; its keys are the Salesforce fields to select
        object_name: Salesforce object to select from
        where_clause: Static condition, without the WHERE keyword
        object_ids: Values carried from the previous stage
        filter_field: Field of ``object_name`` the carried values are matched against

    Returns:
        The SOQL query. The static condition and the id restriction are ANDed
        when both are present; without either no WHERE is emitted.

    Values are quoted as-is. An id containing a single quote produces invalid SOQL.
    """
    query = f"SELECT {','.join(fields.keys())} FROM {object_name}"

    clauses = []
    if where_clause is not None:
        clauses.append(f" {where_clause} ")
    if object_ids is not None:
        if not filter_field:
            raise ConfigurationError(f"Carried ids for {object_name} need a filter field to match against")
        ids = ",".join(f"'{value}'" for value in object_ids)
        clauses.append(f" {filter_field} in ({ids})")

    if clauses:
        query += " WHERE " + "AND".join(clauses)
    return query
