"""
Hearts, points, leaderboard and quests API endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import logging

from lingo.database import get_db
from lingo.schemas.progress import HeartsAndPoints, Leaderboard, LeaderboardEntry, QuestList
from lingo.services.progress_service import progress_service
from lingo.services.quest_service import quest_service
from lingo.utils.auth import CurrentUser, get_current_user
from lingo.utils.cache import cache_service

router = APIRouter(prefix="/api", tags=["progress"])
logger = logging.getLogger(__name__)


@router.get("/progress", response_model=HeartsAndPoints)
async def get_hearts_and_points(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Current hearts, points and subscription flag"""
    return progress_service.get_hearts_and_points(db, user.user_id)


@router.get("/leaderboard", response_model=Leaderboard)
async def get_leaderboard(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Top ten learners by points"""
    cache_key = cache_service.view_key("leaderboard")
    cached = cache_service.get(cache_key)
    if cached:
        return Leaderboard(**cached)

    leaderboard = Leaderboard(
        users=[LeaderboardEntry.model_validate(p) for p in progress_service.get_top_ten(db)]
    )
    cache_service.set(cache_key, leaderboard.model_dump(mode="json"))

    return leaderboard


@router.get("/quests", response_model=QuestList)
async def get_quests(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Point milestones and how close the caller is to each"""
    cache_key = cache_service.view_key("quests", user.user_id)
    cached = cache_service.get(cache_key)
    if cached:
        return QuestList(**cached)

    progress = progress_service.get_hearts_and_points(db, user.user_id)
    quests = quest_service.get_quests(progress.points)
    cache_service.set(cache_key, quests.model_dump(mode="json"))

    return quests
