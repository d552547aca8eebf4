"""
Progress resolution: active lesson, challenge completion and lesson percentage

Combines the curriculum graph with the progress store. Nothing here writes.
"""
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence
from sqlalchemy.orm import Session

from lingo.exceptions import NotFoundError
from lingo.models import Challenge, ChallengeProgress, Lesson, Unit, UserProgress
from lingo.schemas.lesson import (
    ActiveLesson, ChallengeOptionView, ChallengeView, LearnView,
    LessonStatus, LessonView, UnitView
)
from lingo.services.curriculum_service import curriculum_service
from lingo.services.progress_service import progress_service
from lingo.services.request_cache import RequestCache
from lingo.services.subscription_service import subscription_service

logger = logging.getLogger(__name__)


@dataclass
class AnnotatedChallenge:
    challenge: Challenge
    completed: bool


def is_challenge_completed(rows: Sequence[ChallengeProgress]) -> bool:
    """Completed only if at least one row exists and every row is completed"""
    return len(rows) > 0 and all(row.completed for row in rows)


class CourseProgressService:
    """
    Service resolving where a learner stands in their active course

    Curriculum order is unit `order`, then lesson `order`. Every method takes
    the user id explicitly and an optional RequestCache shared by the calls
    that serve one request.
    """

    def _user_progress(self, db: Session, user_id: str, cache: RequestCache) -> Optional[UserProgress]:
        return cache.get_or_compute(
            ("user_progress", user_id),
            lambda: progress_service.get_user_progress(db, user_id)
        )

    def _units(self, db: Session, course_id: int, cache: RequestCache) -> List[Unit]:
        return cache.get_or_compute(
            ("units", course_id),
            lambda: curriculum_service.get_units(db, course_id)
        )

    def _course_progress_rows(
        self,
        db: Session,
        user_id: str,
        course_id: int,
        cache: RequestCache
    ) -> Dict[int, List[ChallengeProgress]]:
        def load():
            challenge_ids = [
                challenge.id
                for unit in self._units(db, course_id, cache)
                for lesson in unit.lessons
                for challenge in lesson.challenges
            ]
            return progress_service.get_challenge_progress(db, user_id, challenge_ids)

        return cache.get_or_compute(("course_progress_rows", user_id, course_id), load)

    def resolve_active_lesson(
        self,
        db: Session,
        user_id: str,
        cache: Optional[RequestCache] = None
    ) -> Optional[Lesson]:
        """
        First lesson of the active course with an unfinished challenge

        Returns:
            The lesson, or None when every challenge is completed (the
            caller may offer practice) or no course is selected
        """
        cache = cache or RequestCache()

        def resolve():
            progress = self._user_progress(db, user_id, cache)
            if not progress or not progress.active_course_id:
                return None

            course_id = progress.active_course_id
            rows = self._course_progress_rows(db, user_id, course_id, cache)

            for unit in self._units(db, course_id, cache):
                for lesson in unit.lessons:
                    if any(
                        not is_challenge_completed(rows.get(challenge.id, []))
                        for challenge in lesson.challenges
                    ):
                        return lesson
            return None

        return cache.get_or_compute(("active_lesson", user_id), resolve)

    def annotate_lesson_challenges(
        self,
        db: Session,
        lesson: Lesson,
        user_id: str,
        cache: Optional[RequestCache] = None
    ) -> List[AnnotatedChallenge]:
        """Lesson challenges in order, each with the user's completion flag"""
        cache = cache or RequestCache()
        rows = cache.get_or_compute(
            ("lesson_progress_rows", user_id, lesson.id),
            lambda: progress_service.get_challenge_progress(
                db, user_id, [challenge.id for challenge in lesson.challenges]
            )
        )
        return [
            AnnotatedChallenge(
                challenge=challenge,
                completed=is_challenge_completed(rows.get(challenge.id, []))
            )
            for challenge in lesson.challenges
        ]

    def compute_lesson_percentage(self, challenges: Sequence[AnnotatedChallenge]) -> int:
        """round(100 * completed / total), half up; 0 for a lesson without challenges"""
        if not challenges:
            return 0
        completed = sum(1 for item in challenges if item.completed)
        return int(math.floor(100 * completed / len(challenges) + 0.5))

    def get_lesson_view(
        self,
        db: Session,
        user_id: str,
        lesson_id: Optional[int] = None,
        cache: Optional[RequestCache] = None
    ) -> LessonView:
        """
        Lesson with annotated challenges and percentage

        Args:
            db: Database session
            user_id: Learner id
            lesson_id: Specific lesson; defaults to the active lesson
            cache: Request cache

        Raises:
            NotFoundError: no such lesson, or no active lesson to default to
        """
        cache = cache or RequestCache()

        if lesson_id is None:
            active = self.resolve_active_lesson(db, user_id, cache)
            if active is None:
                raise NotFoundError("No active lesson")
            lesson_id = active.id

        lesson = cache.get_or_compute(
            ("lesson", lesson_id),
            lambda: curriculum_service.get_lesson(db, lesson_id)
        )
        if not lesson:
            raise NotFoundError("Lesson not found")

        annotated = self.annotate_lesson_challenges(db, lesson, user_id, cache)

        return LessonView(
            id=lesson.id,
            title=lesson.title,
            unit_id=lesson.unit_id,
            order=lesson.order,
            percentage=self.compute_lesson_percentage(annotated),
            challenges=[
                ChallengeView(
                    id=item.challenge.id,
                    type=item.challenge.type.value,
                    question=item.challenge.question,
                    order=item.challenge.order,
                    completed=item.completed,
                    options=[ChallengeOptionView.model_validate(option) for option in item.challenge.options]
                )
                for item in annotated
            ]
        )

    def get_active_lesson_percentage(
        self,
        db: Session,
        user_id: str,
        cache: Optional[RequestCache] = None
    ) -> int:
        cache = cache or RequestCache()
        active = self.resolve_active_lesson(db, user_id, cache)
        if active is None:
            return 0
        return self.get_lesson_view(db, user_id, active.id, cache).percentage

    def get_units_view(
        self,
        db: Session,
        user_id: str,
        course_id: int,
        cache: Optional[RequestCache] = None
    ) -> List[UnitView]:
        """Units of a course; a lesson is completed when all its challenges are (and it has some)"""
        cache = cache or RequestCache()
        rows = self._course_progress_rows(db, user_id, course_id, cache)

        units = []
        for unit in self._units(db, course_id, cache):
            lessons = [
                LessonStatus(
                    id=lesson.id,
                    title=lesson.title,
                    order=lesson.order,
                    completed=bool(lesson.challenges) and all(
                        is_challenge_completed(rows.get(challenge.id, []))
                        for challenge in lesson.challenges
                    )
                )
                for lesson in unit.lessons
            ]
            units.append(UnitView(
                id=unit.id,
                title=unit.title,
                description=unit.description,
                order=unit.order,
                lessons=lessons
            ))
        return units

    def get_learn_view(
        self,
        db: Session,
        user_id: str,
        cache: Optional[RequestCache] = None
    ) -> LearnView:
        """
        Everything the learn page shows

        Raises:
            NotFoundError: the user has not selected a course yet
        """
        cache = cache or RequestCache()

        progress = self._user_progress(db, user_id, cache)
        if not progress or not progress.active_course:
            raise NotFoundError("No active course selected")

        course = progress.active_course
        active = self.resolve_active_lesson(db, user_id, cache)

        return LearnView(
            course_id=course.id,
            course_title=course.title,
            units=self.get_units_view(db, user_id, course.id, cache),
            active_lesson=ActiveLesson(
                id=active.id, title=active.title, unit_id=active.unit_id
            ) if active else None,
            active_lesson_percentage=self.get_active_lesson_percentage(db, user_id, cache),
            hearts=progress.hearts,
            points=progress.points,
            has_active_subscription=subscription_service.has_active_subscription(db, user_id)
        )


# Global instance
course_progress_service = CourseProgressService()
