"""
Pydantic schemas for hearts, points, answers, leaderboard and quests
"""
from pydantic import BaseModel, Field
from typing import List, Literal, Optional


class HeartsAndPoints(BaseModel):
    hearts: int
    points: int
    max_hearts: int
    active_course_id: Optional[int] = None
    has_active_subscription: bool


class AnswerSubmission(BaseModel):
    """Schema for answering a challenge"""
    option_id: int = Field(..., ge=1, description="Selected challenge option")


class AnswerResult(BaseModel):
    """
    Empty on success, {"error": "hearts"} when the user is out of hearts

    Serialized with exclude_none so success is literally {}.
    """
    error: Optional[Literal["hearts"]] = None


class GradedAnswer(AnswerResult):
    """Result of grading a selected option"""
    correct: Optional[bool] = None
    outcome: Optional[str] = None
    hearts: Optional[int] = None
    points: Optional[int] = None


class LeaderboardEntry(BaseModel):
    user_id: str
    user_name: str
    user_image_src: str
    points: int

    class Config:
        from_attributes = True


class Leaderboard(BaseModel):
    users: List[LeaderboardEntry]


class Quest(BaseModel):
    title: str
    value: int
    progress: int
    completed: bool


class QuestList(BaseModel):
    points: int
    quests: List[Quest]
