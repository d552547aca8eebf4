"""
Database models package
"""
from lingo.models.course import Course
from lingo.models.unit import Unit
from lingo.models.lesson import Lesson
from lingo.models.challenge import Challenge, ChallengeOption, ChallengeType
from lingo.models.challenge_progress import ChallengeProgress
from lingo.models.user_progress import UserProgress
from lingo.models.user_subscription import UserSubscription

__all__ = [
    "Course",
    "Unit",
    "Lesson",
    "Challenge",
    "ChallengeOption",
    "ChallengeType",
    "ChallengeProgress",
    "UserProgress",
    "UserSubscription",
]
