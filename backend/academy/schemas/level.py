from typing import Optional
from sqlmodel import SQLModel


class LevelCheckRead(SQLModel):
    level_unlocked: bool
    next_level_id: Optional[int] = None
    completion_percentage: float


class LevelProgressRead(SQLModel):
    level_id: int
    level_number: int
    name: str
    description: Optional[str] = None
    is_unlocked: bool
    total_lessons: int
    completed_lessons: int
    completion_percentage: int
