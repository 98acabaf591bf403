"""
Field mapping from source records to destination payloads.
"""

import logging
from typing import Any, Dict, Mapping

from ..exceptions import TransformationError

logger = logging.getLogger(__name__)


class FieldTransformer:
    """
    Renames source fields to destination fields.
    """

    @staticmethod
    def map_fields(source_data: Mapping[str, Any], field_mappings: Mapping[str, str]) -> Dict[str, Any]:
        """
        Map fields from source format to destination format.

        Args:
            source_data: Record from the source service
            field_mappings: Source field -> destination field

        Returns:
            A dict holding exactly the destination fields of ``field_mappings``.
            Null source values are kept as None.

        Raises:
            TransformationError: If a mapped field is absent from the record
        """
        target_data = {}

        for source_field, target_field in field_mappings.items():
            if source_field not in source_data:
                raise TransformationError(
                    f"Field '{source_field}' missing from source record "
                    f"(available: {sorted(source_data.keys())})"
                )
            target_data[target_field] = source_data[source_field]

        return target_data
