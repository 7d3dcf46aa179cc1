"""
Partial-update operations applied to a screen configuration snapshot.

Depth is limited to two: a top-level field, or one field inside a
top-level section.
"""

from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import Field, TypeAdapter

from screenconf.domain.schemas.common import BaseSchema


class FieldUpdate(BaseSchema):
    """Set a top-level field."""

    kind: Literal["field"] = "field"
    field: str = Field(..., min_length=1)
    value: Any = None


class SectionUpdate(BaseSchema):
    """Set one field inside a top-level section (e.g. appearance_params)."""

    kind: Literal["section"] = "section"
    section: str = Field(..., min_length=1)
    field: str = Field(..., min_length=1)
    value: Any = None


UpdateOperation = Annotated[
    Union[FieldUpdate, SectionUpdate], Field(discriminator="kind")
]

_operation_adapter = TypeAdapter(UpdateOperation)


def parse_operation(data: Mapping[str, Any]) -> Union[FieldUpdate, SectionUpdate]:
    """Validate a serialized operation such as ``{"kind": "field", ...}``."""
    return _operation_adapter.validate_python(data)
