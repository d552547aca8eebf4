"""
Challenge answer submission API endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import logging

from lingo.database import get_db
from lingo.schemas.progress import AnswerResult, AnswerSubmission, GradedAnswer
from lingo.services.grading_service import GradeResult, grading_service
from lingo.utils.auth import CurrentUser, get_current_user

router = APIRouter(prefix="/api/challenges", tags=["challenges"])
logger = logging.getLogger(__name__)


def _answer_result(result: GradeResult) -> AnswerResult:
    return AnswerResult(error="hearts" if result.hearts_exhausted else None)


@router.post(
    "/{challenge_id}/answer",
    response_model=GradedAnswer,
    response_model_exclude_none=True
)
async def submit_answer(
    challenge_id: int,
    submission: AnswerSubmission,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Grade a selected option

    - Correct: +10 points; practice also restores a heart
    - Incorrect: -1 heart unless practising or subscribed
    - {"error": "hearts"} when out of hearts, nothing is changed
    """
    logger.info(f"Grading option {submission.option_id} on challenge {challenge_id} for user {user.user_id}")

    is_correct, result = grading_service.submit_answer(db, user.user_id, challenge_id, submission.option_id)

    return GradedAnswer(
        error="hearts" if result.hearts_exhausted else None,
        correct=is_correct,
        outcome=result.outcome.value,
        hearts=result.hearts,
        points=result.points
    )


@router.post(
    "/{challenge_id}/correct",
    response_model=AnswerResult,
    response_model_exclude_none=True
)
async def submit_correct_answer(
    challenge_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Record a correct answer: {} or {"error": "hearts"}"""
    return _answer_result(grading_service.submit_correct_answer(db, user.user_id, challenge_id))


@router.post(
    "/{challenge_id}/incorrect",
    response_model=AnswerResult,
    response_model_exclude_none=True
)
async def submit_incorrect_answer(
    challenge_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Record an incorrect answer: {} or {"error": "hearts"}"""
    return _answer_result(grading_service.reduce_hearts(db, user.user_id, challenge_id))
