"""
Shared pydantic configuration for the gradebook's domain records.

Records are frozen so a DataSnapshot can never be edited in place, and
they use camelCase aliases so the persisted blob keeps the field names
the browser client has always written (``studentId``, ``homeroomTeachers``).
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DomainModel(BaseModel):
    """Base class for all immutable domain records."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        str_strip_whitespace=True,
    )

    def to_json_dict(self) -> dict:
        """Serialize using the persisted (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True)
