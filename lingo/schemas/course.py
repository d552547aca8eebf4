"""
Pydantic schemas for course-related requests and responses
"""
from pydantic import BaseModel
from typing import List, Optional


class CourseSummary(BaseModel):
    """Course as listed on the course picker"""
    id: int
    title: str
    image_src: str

    class Config:
        from_attributes = True


class CourseList(BaseModel):
    """All courses plus the caller's active course"""
    courses: List[CourseSummary]
    active_course_id: Optional[int] = None


class LessonOutline(BaseModel):
    id: int
    title: str
    order: int

    class Config:
        from_attributes = True


class UnitOutline(BaseModel):
    id: int
    title: str
    description: str
    order: int
    lessons: List[LessonOutline]

    class Config:
        from_attributes = True


class CourseDetail(CourseSummary):
    """Course with its units and lessons in curriculum order"""
    units: List[UnitOutline]
