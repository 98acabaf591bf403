"""
Configuration models for Salesforce to Airtable sync runs.
"""

from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..exceptions import ConfigurationError


class ObjectMapping(BaseModel):
    """
    How one Salesforce object is pulled and where it lands in Airtable.

    ``return_field`` names a source field whose values are handed to the next
    object in the run; that object restricts its query by matching them
    against its own ``filter_field``. For example, Opportunities can return
    ``AccountId`` so that the following Account stage filters on ``Id``.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    object_name: str = Field(..., min_length=1, description="Salesforce object, e.g. Opportunity")
    table: str = Field(..., min_length=1, description="Airtable table receiving the records")
    primary_destination_field: str = Field(..., min_length=1, description="Primary field in the Airtable table")
    primary_source_field: str = Field("Id", min_length=1, description="Unique identifier of the Salesforce object")
    where_clause: Optional[str] = Field(None, description="SOQL condition, without the WHERE keyword")
    return_field: Optional[str] = Field(None, description="Source field whose values feed the next stage")
    filter_field: Optional[str] = Field(None, description="Source field matched against the previous stage's values")
    fields: Dict[str, str] = Field(..., description="Salesforce field -> Airtable field")
    delete_on_empty_source: bool = Field(
        True, description="Delete every Airtable row when the query returns nothing"
    )

    @field_validator('fields')
    @classmethod
    def validate_fields(cls, v: Dict[str, str]) -> Dict[str, str]:
        if not v:
            raise ValueError("At least one field mapping is required")
        for source_field, target_field in v.items():
            if not source_field or not target_field:
                raise ValueError(f"Invalid field mapping: {source_field!r} -> {target_field!r}")
        targets = list(v.values())
        duplicates = sorted({t for t in targets if targets.count(t) > 1})
        if duplicates:
            raise ValueError(f"Airtable fields mapped more than once: {duplicates}")
        return v

    @field_validator('where_clause')
    @classmethod
    def validate_where_clause(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            return None
        if v.upper().startswith("WHERE "):
            raise ValueError("where_clause must not include the WHERE keyword")
        return v

    @model_validator(mode='after')
    def validate_field_references(self) -> "ObjectMapping":
        if self.primary_source_field not in self.fields:
            raise ValueError(
                f"primary_source_field '{self.primary_source_field}' is not a mapped field of {self.object_name}"
            )
        if self.return_field is not None and self.return_field not in self.fields:
            raise ValueError(
                f"return_field '{self.return_field}' is not a mapped field of {self.object_name}"
            )
        return self

    @property
    def source_fields(self) -> List[str]:
        """Salesforce fields selected for this object."""
        return list(self.fields.keys())


class SyncConfig(BaseModel):
    """
    A complete sync run: the Airtable base and the ordered objects to mirror.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    base_id: str = Field(..., min_length=1, description="Airtable base receiving the data")
    objects: List[ObjectMapping] = Field(..., min_length=1, description="Objects to sync, in order")

    @field_validator('objects')
    @classmethod
    def validate_unique_objects(cls, v: List[ObjectMapping]) -> List[ObjectMapping]:
        names = [mapping.object_name for mapping in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Objects configured more than once: {duplicates}")
        return v

    def get_object(self, object_name: str) -> ObjectMapping:
        """Look up a mapping by Salesforce object name."""
        for mapping in self.objects:
            if mapping.object_name == object_name:
                return mapping
        raise ConfigurationError(
            f"Object '{object_name}' is not configured. Available: {[m.object_name for m in self.objects]}"
        )

    def select(self, object_names: List[str]) -> "SyncConfig":
        """Return a copy restricted to ``object_names``, keeping configured order."""
        for name in object_names:
            self.get_object(name)
        wanted = set(object_names)
        return SyncConfig(
            base_id=self.base_id,
            objects=[m for m in self.objects if m.object_name in wanted]
        )


def load_sync_config(path: Union[str, Path]) -> SyncConfig:
    """
    Load and validate a sync configuration from a JSON file.

    Raises:
        ConfigurationError: If the file cannot be read or fails validation
    """
    config_path = Path(path)
    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read sync config {config_path}: {e}") from e

    try:
        return SyncConfig.model_validate_json(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid sync config {config_path}: {e}") from e
