from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, populated from either form."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True
    )

class TimestampedModel(CamelModel):
    """Base model with timestamp fields."""
    created_at: datetime
    updated_at: Optional[datetime] = None
