"""Routes for level completion checks and the level overview."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from academy.database import get_session
from academy.grading import parse_identifier
from academy.levels import get_level_overview
from academy.progression import ProgressionEngine, get_progression_engine
from academy.schemas import LevelCheckRead, LevelProgressRead

router = APIRouter(prefix="/users/{user_id}/levels", tags=["levels"])


@router.get("", response_model=list[LevelProgressRead])
async def list_levels(
    user_id: str,
    db: AsyncSession = Depends(get_session),
):
    overview = await get_level_overview(db, parse_identifier(user_id, "user"))
    return [
        LevelProgressRead(
            level_id=p.level_id,
            level_number=p.level_number,
            name=p.name,
            description=p.description,
            is_unlocked=p.is_unlocked,
            total_lessons=p.total_lessons,
            completed_lessons=p.completed_lessons,
            completion_percentage=p.completion_percentage,
        )
        for p in overview
    ]


@router.post("/{level_id}/check", response_model=LevelCheckRead)
async def check_level(
    user_id: str,
    level_id: str,
    engine: ProgressionEngine = Depends(get_progression_engine),
):
    check = await engine.check_and_unlock_next_level(user_id, level_id)
    return LevelCheckRead(
        level_unlocked=check.level_unlocked,
        next_level_id=check.next_level_id,
        completion_percentage=check.completion_percentage,
    )
