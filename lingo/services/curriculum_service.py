"""
Read-only access to the curriculum: Course -> Unit -> Lesson -> Challenge -> ChallengeOption
"""
import logging
from typing import List, Optional
from sqlalchemy.orm import Session, selectinload

from lingo.models import Course, Unit, Lesson, Challenge

logger = logging.getLogger(__name__)


class CurriculumService:
    """Curriculum graph reader; every list is returned in `order`"""

    def get_courses(self, db: Session) -> List[Course]:
        return db.query(Course).order_by(Course.id).all()

    def get_course_by_id(self, db: Session, course_id: int) -> Optional[Course]:
        """Course with units and their lessons loaded"""
        return db.query(Course).options(
            selectinload(Course.units).selectinload(Unit.lessons)
        ).filter(Course.id == course_id).first()

    def get_units(self, db: Session, course_id: int) -> List[Unit]:
        """
        Units of a course with lessons and challenges loaded

        Args:
            db: Database session
            course_id: Course id

        Returns:
            Units ordered by `order`; relationships are ordered by `order` too
        """
        return db.query(Unit).options(
            selectinload(Unit.lessons).selectinload(Lesson.challenges)
        ).filter(
            Unit.course_id == course_id
        ).order_by(Unit.order, Unit.id).all()

    def get_lesson(self, db: Session, lesson_id: int) -> Optional[Lesson]:
        """Lesson with its challenges and their options"""
        return db.query(Lesson).options(
            selectinload(Lesson.challenges).selectinload(Challenge.options)
        ).filter(Lesson.id == lesson_id).first()

    def get_challenge(self, db: Session, challenge_id: int) -> Optional[Challenge]:
        return db.query(Challenge).options(
            selectinload(Challenge.options)
        ).filter(Challenge.id == challenge_id).first()

    def has_lessons(self, db: Session, course_id: int) -> bool:
        """True if the course has at least one unit holding a lesson"""
        return db.query(Lesson.id).join(Unit).filter(
            Unit.course_id == course_id
        ).first() is not None


# Global instance
curriculum_service = CurriculumService()
