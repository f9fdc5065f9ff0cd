"""
Base Pydantic schemas
"""

from pydantic import BaseModel, ConfigDict
from uuid import UUID


class BaseSchema(BaseModel):
    """Base schema with common configuration"""
    model_config = ConfigDict(
        from_attributes=True,
        use_enum_values=True,
    )


class IDSchema(BaseSchema):
    """Schema with ID field"""
    id: UUID
