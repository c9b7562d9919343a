"""
Query DTO for GET /api/v1/users.

created_from / created_to are ISO-8601 strings; values that fail to parse
are dropped rather than rejected.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ListUsersQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int = Field(default=1, ge=0)
    limit: int = Field(default=10, ge=0, le=100)
    search: Optional[str] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None

    @field_validator("created_from", "created_to", mode="before")
    @classmethod
    def _lenient_datetime(cls, v):
        if v is None or isinstance(v, datetime):
            return v
        try:
            return datetime.fromisoformat(str(v).replace("Z", "+00:00"))
        except ValueError:
            return None
