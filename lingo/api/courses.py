"""
Course catalogue and course selection API endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import logging

from lingo.database import get_db
from lingo.exceptions import NotFoundError
from lingo.schemas.course import CourseDetail, CourseList, CourseSummary
from lingo.schemas.progress import HeartsAndPoints
from lingo.services.curriculum_service import curriculum_service
from lingo.services.progress_service import progress_service
from lingo.utils.auth import CurrentUser, get_current_user

router = APIRouter(prefix="/api/courses", tags=["courses"])
logger = logging.getLogger(__name__)


@router.get("", response_model=CourseList)
async def list_courses(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """All courses and the caller's active course"""
    courses = curriculum_service.get_courses(db)
    progress = progress_service.get_user_progress(db, user.user_id)

    return CourseList(
        courses=[CourseSummary.model_validate(course) for course in courses],
        active_course_id=progress.active_course_id if progress else None
    )


@router.get("/{course_id}", response_model=CourseDetail)
async def get_course(
    course_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Course with units and lessons in curriculum order"""
    course = curriculum_service.get_course_by_id(db, course_id)
    if not course:
        raise NotFoundError("Course not found")

    return CourseDetail.model_validate(course)


@router.post("/{course_id}/select", response_model=HeartsAndPoints)
async def select_course(
    course_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Make a course the active course

    - Creates the user's progress with full hearts on first selection
    - Keeps hearts and points when switching courses
    """
    progress_service.select_course(db, user, course_id)
    return progress_service.get_hearts_and_points(db, user.user_id)
