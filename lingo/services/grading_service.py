"""
Challenge grading service
Correct answers: award points, complete the challenge, restore a heart on practice
Incorrect answers: cost a heart unless practising or subscribed
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional, Tuple
from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lingo.config import settings
from lingo.exceptions import NotFoundError, InvalidOperation
from lingo.models import Challenge, ChallengeProgress, UserProgress
from lingo.services.curriculum_service import curriculum_service
from lingo.services.progress_service import progress_service
from lingo.services.subscription_service import subscription_service
from lingo.utils.events import event_bus, ProgressChanged

logger = logging.getLogger(__name__)


class GradeOutcome(str, enum.Enum):
    COMPLETED = "completed"                # first correct answer
    PRACTICED = "practiced"                # correct answer on an already attempted challenge
    HEART_LOST = "heart_lost"
    PRACTICE = "practice"                  # wrong answer while practising, no penalty
    SUBSCRIPTION = "subscription"          # wrong answer, subscriber, no penalty
    HEARTS_EXHAUSTED = "hearts_exhausted"
    REFILLED = "refilled"


@dataclass
class GradeResult:
    """Typed result of a grading operation; running out of hearts is a result, not an error"""
    outcome: GradeOutcome
    hearts: int
    points: int
    lesson_id: Optional[int] = None

    @property
    def hearts_exhausted(self) -> bool:
        return self.outcome == GradeOutcome.HEARTS_EXHAUSTED


class GradingService:
    """
    Service applying the hearts and points rules

    Strategy:
    - Practice: a progress row already exists for (user, challenge)
    - Empty hearts block first attempts, never practice or subscribers
    - Every mutation is one conditional UPDATE on user_progress inside a
      single transaction, so concurrent submissions cannot lose updates
    """

    def _load(self, db: Session, user_id: str, challenge_id: int) -> Tuple[UserProgress, Challenge]:
        progress = progress_service.get_user_progress(db, user_id)
        if not progress:
            raise NotFoundError("User progress not found")

        challenge = curriculum_service.get_challenge(db, challenge_id)
        if not challenge:
            raise NotFoundError("Challenge not found")

        return progress, challenge

    def _result(self, db: Session, outcome: GradeOutcome, progress: UserProgress, lesson_id: int) -> GradeResult:
        db.refresh(progress)
        return GradeResult(outcome=outcome, hearts=progress.hearts, points=progress.points, lesson_id=lesson_id)

    def _update_progress(self, db: Session, user_id: str, values: dict, *conditions) -> int:
        return db.query(UserProgress).filter(
            UserProgress.user_id == user_id,
            *conditions
        ).update(values, synchronize_session=False)

    def submit_answer(
        self,
        db: Session,
        user_id: str,
        challenge_id: int,
        option_id: int
    ) -> Tuple[bool, GradeResult]:
        """
        Grade a selected option

        Args:
            db: Database session
            user_id: Learner id
            challenge_id: Challenge answered
            option_id: Option chosen by the learner

        Returns:
            Tuple of (is_correct, result)

        Raises:
            NotFoundError: challenge, option or user progress missing
        """
        progress, challenge = self._load(db, user_id, challenge_id)

        option = next((o for o in challenge.options if o.id == option_id), None)
        if option is None:
            raise NotFoundError("Option not found for this challenge")

        if option.correct:
            return True, self._grade_correct(db, progress, challenge)
        return False, self._grade_incorrect(db, progress, challenge)

    def submit_correct_answer(self, db: Session, user_id: str, challenge_id: int) -> GradeResult:
        """
        Record a correct answer

        First attempt: insert a completed progress row, +points.
        Practice: re-affirm completion, +points, +1 heart capped at MAX_HEARTS.
        """
        progress, challenge = self._load(db, user_id, challenge_id)
        return self._grade_correct(db, progress, challenge)

    def _grade_correct(self, db: Session, progress: UserProgress, challenge: Challenge) -> GradeResult:
        user_id, challenge_id = progress.user_id, challenge.id
        existing = progress_service.find_challenge_progress(db, user_id, challenge_id)
        is_practice = existing is not None

        if (
            progress.hearts == 0
            and not is_practice
            and not subscription_service.has_active_subscription(db, user_id)
        ):
            logger.info(f"User {user_id} has no hearts left for challenge {challenge_id}")
            return GradeResult(GradeOutcome.HEARTS_EXHAUSTED, progress.hearts, progress.points, challenge.lesson_id)

        values = {UserProgress.points: UserProgress.points + settings.POINTS_PER_CHALLENGE}

        try:
            if is_practice:
                existing.completed = True
                values[UserProgress.hearts] = case(
                    (UserProgress.hearts < settings.MAX_HEARTS, UserProgress.hearts + 1),
                    else_=UserProgress.hearts
                )
            else:
                db.add(ChallengeProgress(user_id=user_id, challenge_id=challenge_id, completed=True))
                db.flush()

            self._update_progress(db, user_id, values)
            db.commit()
        except IntegrityError:
            # A concurrent first attempt inserted the row first; this one is now practice
            db.rollback()
            logger.warning(f"Concurrent first attempt on challenge {challenge_id} by {user_id}, retrying as practice")
            return self._grade_correct(db, progress, challenge)
        except Exception:
            db.rollback()
            raise

        outcome = GradeOutcome.PRACTICED if is_practice else GradeOutcome.COMPLETED
        result = self._result(db, outcome, progress, challenge.lesson_id)

        logger.info(
            f"Correct answer: user={user_id}, challenge={challenge_id}, practice={is_practice}, "
            f"hearts={result.hearts}, points={result.points}"
        )
        event_bus.publish(ProgressChanged(user_id=user_id, reason=outcome.value, lesson_id=challenge.lesson_id))

        return result

    def reduce_hearts(self, db: Session, user_id: str, challenge_id: int) -> GradeResult:
        """
        Record an incorrect answer

        No progress row is written. Practice and subscribers are never
        penalised; at zero hearts nothing changes and HEARTS_EXHAUSTED is returned.
        """
        progress, challenge = self._load(db, user_id, challenge_id)
        return self._grade_incorrect(db, progress, challenge)

    def _grade_incorrect(self, db: Session, progress: UserProgress, challenge: Challenge) -> GradeResult:
        user_id, challenge_id = progress.user_id, challenge.id
        lesson_id = challenge.lesson_id

        if progress_service.find_challenge_progress(db, user_id, challenge_id) is not None:
            return GradeResult(GradeOutcome.PRACTICE, progress.hearts, progress.points, lesson_id)

        if subscription_service.has_active_subscription(db, user_id):
            return GradeResult(GradeOutcome.SUBSCRIPTION, progress.hearts, progress.points, lesson_id)

        if progress.hearts == 0:
            return GradeResult(GradeOutcome.HEARTS_EXHAUSTED, progress.hearts, progress.points, lesson_id)

        try:
            updated = self._update_progress(
                db, user_id,
                {UserProgress.hearts: UserProgress.hearts - 1},
                UserProgress.hearts > 0
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        if updated == 0:
            # Another request spent the last heart between the read and the update
            return self._result(db, GradeOutcome.HEARTS_EXHAUSTED, progress, lesson_id)

        result = self._result(db, GradeOutcome.HEART_LOST, progress, lesson_id)
        logger.info(f"Incorrect answer: user={user_id}, challenge={challenge_id}, hearts={result.hearts}")
        event_bus.publish(ProgressChanged(user_id=user_id, reason="heart_lost", lesson_id=lesson_id))

        return result

    def refill_hearts(self, db: Session, user_id: str) -> GradeResult:
        """
        Trade POINTS_TO_REFILL points for a full set of hearts

        Raises:
            NotFoundError: no user progress
            InvalidOperation: hearts already full or not enough points
        """
        progress = progress_service.get_user_progress(db, user_id)
        if not progress:
            raise NotFoundError("User progress not found")

        if progress.hearts >= settings.MAX_HEARTS:
            raise InvalidOperation("Hearts are already full")

        if progress.points < settings.POINTS_TO_REFILL:
            raise InvalidOperation("Not enough points")

        try:
            updated = self._update_progress(
                db, user_id,
                {
                    UserProgress.hearts: settings.MAX_HEARTS,
                    UserProgress.points: UserProgress.points - settings.POINTS_TO_REFILL
                },
                UserProgress.hearts < settings.MAX_HEARTS,
                UserProgress.points >= settings.POINTS_TO_REFILL
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        if updated == 0:
            raise InvalidOperation("Hearts or points changed, try again")

        result = self._result(db, GradeOutcome.REFILLED, progress, None)
        logger.info(f"Hearts refilled: user={user_id}, points={result.points}")
        event_bus.publish(ProgressChanged(user_id=user_id, reason="hearts_refilled"))

        return result


# Global instance
grading_service = GradingService()
