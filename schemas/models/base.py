"""
Base model for all MongoDB document models.

Users are keyed by a sequential integer id (allocated from the `counters`
collection) rather than an ObjectId, so tokens can carry it as an unsigned
32-bit claim.

MongoBaseModel provides to_mongo() / from_mongo() for round-tripping between
Python objects and raw MongoDB dicts.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

UINT32_MAX = 2**32 - 1


class MongoBaseModel(BaseModel):
    """
    Base for all document models.

    Stores the MongoDB _id as `id`. Subclasses add collection-specific
    fields on top.

    to_mongo()  — converts model → dict suitable for pymongo insert/update
    from_mongo() — converts raw pymongo dict → model instance (returns None
                    gracefully when passed None)
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = Field(default=None, alias="_id", ge=0, le=UINT32_MAX)

    def to_mongo(self) -> dict:
        """Return a dict ready for MongoDB insertion (``id`` renamed to ``_id``)."""
        data = self.model_dump(by_alias=True, exclude_none=False)
        if data.get("_id") is None:
            data.pop("_id", None)
        return data

    @classmethod
    def from_mongo(cls, data: Optional[dict]) -> Optional["MongoBaseModel"]:
        """Build a model instance from a raw MongoDB document dict.

        Returns None when data is None (e.g. find_one returns None).
        """
        if data is None:
            return None
        return cls.model_validate(data)
