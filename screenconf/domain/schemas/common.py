"""
Common Pydantic schema bases.
"""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with shared configuration."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)
