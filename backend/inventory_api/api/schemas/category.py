"""Category payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import ConfigDict, Field, StrictBool, StrictStr

from inventory_api.api.schemas.common import CamelModel


class CategoryCreate(CamelModel):
    name: StrictStr = Field(..., min_length=2, max_length=100)
    description: StrictStr = Field("", max_length=500)


class CategoryUpdate(CamelModel):
    """Partial update; like ``ProductUpdate``, an explicit ``null`` is rejected."""

    name: StrictStr = Field(None, min_length=2, max_length=100)
    description: StrictStr = Field(None, max_length=500)
    is_active: StrictBool = Field(None)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class CategoryRead(CamelModel):
    id: int
    name: str
    description: str
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
