"""
User document model.

Maps to the `users` MongoDB collection. A user is created lazily the first
time an unseen phone number passes OTP verification and is never mutated
afterwards.
"""

from __future__ import annotations

from datetime import datetime

from schemas.models.base import MongoBaseModel


class UserDoc(MongoBaseModel):
    """Document model for the `users` collection."""

    phone: str
    created_at: datetime
