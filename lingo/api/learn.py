"""
Learn page and lesson API endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import logging

from lingo.database import get_db
from lingo.schemas.lesson import LearnView, LessonView
from lingo.services.course_progress_service import course_progress_service
from lingo.services.request_cache import RequestCache, get_request_cache
from lingo.services.subscription_service import subscription_service
from lingo.utils.auth import CurrentUser, get_current_user
from lingo.utils.cache import cache_service

router = APIRouter(prefix="/api", tags=["learn"])
logger = logging.getLogger(__name__)


@router.get("/learn", response_model=LearnView)
async def get_learn_view(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    request_cache: RequestCache = Depends(get_request_cache)
):
    """
    Units of the active course with lesson completion

    - Active lesson is the first one with an unfinished challenge
    - Cached per user until their progress changes
    - The subscription flag is never cached: it expires without any event
    """
    cache_key = cache_service.view_key("learn", user.user_id)
    cached = cache_service.get(cache_key)
    if cached:
        return LearnView(
            **cached,
            has_active_subscription=subscription_service.has_active_subscription(db, user.user_id)
        )

    view = course_progress_service.get_learn_view(db, user.user_id, request_cache)
    cache_service.set(cache_key, view.model_dump(mode="json", exclude={"has_active_subscription"}))

    return view


@router.get("/lessons/active", response_model=LessonView)
async def get_active_lesson(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    request_cache: RequestCache = Depends(get_request_cache)
):
    """
    The active lesson with annotated challenges and percentage

    404 when every lesson is completed; the client then offers practice.
    """
    cache_key = cache_service.view_key("lesson:active", user.user_id)
    cached = cache_service.get(cache_key)
    if cached:
        return LessonView(**cached)

    view = course_progress_service.get_lesson_view(db, user.user_id, None, request_cache)
    cache_service.set(cache_key, view.model_dump(mode="json"))

    return view


@router.get("/lessons/{lesson_id}", response_model=LessonView)
async def get_lesson(
    lesson_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    request_cache: RequestCache = Depends(get_request_cache)
):
    """A specific lesson, e.g. for practising a completed one"""
    cache_key = cache_service.view_key(f"lesson:{lesson_id}", user.user_id)
    cached = cache_service.get(cache_key)
    if cached:
        return LessonView(**cached)

    view = course_progress_service.get_lesson_view(db, user.user_id, lesson_id, request_cache)
    cache_service.set(cache_key, view.model_dump(mode="json"))

    return view
