"""
Progress store: per-user hearts, points, active course and challenge completion
"""
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional
from sqlalchemy.orm import Session

from lingo.config import settings
from lingo.exceptions import NotFoundError, InvalidOperation
from lingo.models import ChallengeProgress, UserProgress
from lingo.schemas.progress import HeartsAndPoints
from lingo.services.curriculum_service import curriculum_service
from lingo.services.subscription_service import subscription_service
from lingo.utils.auth import CurrentUser
from lingo.utils.events import event_bus, ProgressChanged

logger = logging.getLogger(__name__)


class ProgressService:
    """Reads and course-selection writes against user_progress / challenge_progress"""

    def get_user_progress(self, db: Session, user_id: str) -> Optional[UserProgress]:
        return db.query(UserProgress).filter(UserProgress.user_id == user_id).first()

    def find_challenge_progress(
        self,
        db: Session,
        user_id: str,
        challenge_id: int
    ) -> Optional[ChallengeProgress]:
        """The user's progress row for a challenge; its existence marks a practice attempt"""
        return db.query(ChallengeProgress).filter(
            ChallengeProgress.user_id == user_id,
            ChallengeProgress.challenge_id == challenge_id
        ).first()

    def get_challenge_progress(
        self,
        db: Session,
        user_id: str,
        challenge_ids: Iterable[int]
    ) -> Dict[int, List[ChallengeProgress]]:
        """
        Progress rows for many challenges at once

        Args:
            db: Database session
            user_id: Learner id
            challenge_ids: Challenges of interest

        Returns:
            {challenge_id: [rows]}; challenges without rows are absent
        """
        ids = list(set(challenge_ids))
        if not ids:
            return {}

        rows = db.query(ChallengeProgress).filter(
            ChallengeProgress.user_id == user_id,
            ChallengeProgress.challenge_id.in_(ids)
        ).all()

        by_challenge = defaultdict(list)
        for row in rows:
            by_challenge[row.challenge_id].append(row)
        return dict(by_challenge)

    def select_course(self, db: Session, user: CurrentUser, course_id: int) -> UserProgress:
        """
        Make a course the user's active course

        New learners start with full hearts and no points. Switching courses
        keeps hearts and points and refreshes the display name and avatar.

        Raises:
            NotFoundError: unknown course
            InvalidOperation: course has no lessons yet
        """
        course = curriculum_service.get_course_by_id(db, course_id)
        if not course:
            raise NotFoundError("Course not found")

        if not curriculum_service.has_lessons(db, course_id):
            raise InvalidOperation("Course is empty")

        progress = self.get_user_progress(db, user.user_id)

        try:
            if progress:
                progress.active_course_id = course_id
                progress.user_name = user.name
                progress.user_image_src = user.image_src
            else:
                progress = UserProgress(
                    user_id=user.user_id,
                    user_name=user.name,
                    user_image_src=user.image_src,
                    active_course_id=course_id,
                    hearts=settings.MAX_HEARTS,
                    points=0
                )
                db.add(progress)

            db.commit()
            db.refresh(progress)
        except Exception:
            db.rollback()
            raise

        logger.info(f"User {user.user_id} selected course {course_id}")
        event_bus.publish(ProgressChanged(user_id=user.user_id, reason="course_selected"))

        return progress

    def get_hearts_and_points(self, db: Session, user_id: str) -> HeartsAndPoints:
        """
        Raises:
            NotFoundError: the user has not selected a course yet
        """
        progress = self.get_user_progress(db, user_id)
        if not progress:
            raise NotFoundError("User progress not found")

        return HeartsAndPoints(
            hearts=progress.hearts,
            points=progress.points,
            max_hearts=settings.MAX_HEARTS,
            active_course_id=progress.active_course_id,
            has_active_subscription=subscription_service.has_active_subscription(db, user_id)
        )

    def get_top_ten(self, db: Session) -> List[UserProgress]:
        """Learners with the most points; ties are ordered by user id"""
        return db.query(UserProgress).order_by(
            UserProgress.points.desc(),
            UserProgress.user_id
        ).limit(settings.LEADERBOARD_SIZE).all()


# Global instance
progress_service = ProgressService()
