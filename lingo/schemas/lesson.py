"""
Pydantic schemas for learn and lesson views
"""
from pydantic import BaseModel
from typing import List, Optional


class ChallengeOptionView(BaseModel):
    """Includes `correct` so clients using /correct and /incorrect can check answers locally"""
    id: int
    text: str
    correct: bool
    image_src: Optional[str] = None
    audio_src: Optional[str] = None

    class Config:
        from_attributes = True


class ChallengeView(BaseModel):
    """Challenge annotated with the caller's completion state"""
    id: int
    type: str
    question: str
    order: int
    completed: bool
    options: List[ChallengeOptionView]


class LessonView(BaseModel):
    """Lesson page payload"""
    id: int
    title: str
    unit_id: int
    order: int
    challenges: List[ChallengeView]
    percentage: int


class LessonStatus(BaseModel):
    id: int
    title: str
    order: int
    completed: bool


class UnitView(BaseModel):
    id: int
    title: str
    description: str
    order: int
    lessons: List[LessonStatus]


class ActiveLesson(BaseModel):
    id: int
    title: str
    unit_id: int


class LearnView(BaseModel):
    """Learn page payload: the active course's units with lesson completion"""
    course_id: int
    course_title: str
    units: List[UnitView]
    active_lesson: Optional[ActiveLesson] = None
    active_lesson_percentage: int = 0
    hearts: int
    points: int
    has_active_subscription: bool
