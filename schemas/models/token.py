"""
Token payload model.

The decoded claim set of a signed bearer token, validated once into a fixed
shape. Access tokens carry no ``is_refresh`` claim; refresh tokens carry
``is_refresh: true``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from schemas.models.base import UINT32_MAX


class TokenPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", strict=True)

    user_id: int = Field(ge=0, le=UINT32_MAX)
    exp: int
    iat: int
    is_refresh: bool = False
