"""Routes for checking, listing and manually awarding badges."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from academy.database import get_session
from academy.crud import get_user_badges
from academy.grading import parse_identifier
from academy.models import Badge
from academy.progression import ProgressionEngine, get_progression_engine
from academy.schemas import (
    BadgeRead,
    UserBadgeRead,
    BadgeCheckResult,
    ManualAwardResult,
)

router = APIRouter(tags=["badges"])


def badge_read(badge: Badge) -> BadgeRead:
    return BadgeRead.model_validate(badge)


@router.post("/users/{user_id}/badges/check", response_model=BadgeCheckResult)
async def check_badges(
    user_id: str,
    engine: ProgressionEngine = Depends(get_progression_engine),
):
    return BadgeCheckResult(badge_ids=await engine.check_and_award_badges(user_id))


@router.get("/users/{user_id}/badges", response_model=list[UserBadgeRead])
async def list_user_badges(
    user_id: str,
    db: AsyncSession = Depends(get_session),
):
    rows = await get_user_badges(db, parse_identifier(user_id, "user"))
    return [
        UserBadgeRead(
            id=badge.id,
            name=badge.name,
            description=badge.description,
            icon=badge.icon,
            criteria=badge.criteria,
            source=user_badge.source,
            earned_at=user_badge.earned_at,
            awarded_by_user_id=user_badge.awarded_by_user_id,
        )
        for badge, user_badge in rows
    ]


@router.post(
    "/admin/badges/{badge_id}/award/{user_id}", response_model=ManualAwardResult
)
async def award_badge(
    badge_id: str,
    user_id: str,
    engine: ProgressionEngine = Depends(get_progression_engine),
):
    awarded = await engine.manually_award_badge(user_id, badge_id)
    return ManualAwardResult(awarded=awarded)
