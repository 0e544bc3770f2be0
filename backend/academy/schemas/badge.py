"""Schemas for badges and badge awards."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BadgeRead(BaseModel):
    id: int
    name: str
    description: str = ""
    icon: str = ""
    criteria: dict = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)


class UserBadgeRead(BadgeRead):
    source: str
    earned_at: datetime
    awarded_by_user_id: Optional[int] = None


class BadgeCheckResult(BaseModel):
    badge_ids: List[int]


class ManualAwardResult(BaseModel):
    awarded: bool
