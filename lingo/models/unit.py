"""
Unit model - ordered group of lessons within a course
"""
from sqlalchemy import Column, Integer, String, Text, ForeignKey
from sqlalchemy.orm import relationship
from lingo.database import Base


class Unit(Base):
    """
    Units table - ordered by `order` within their course
    """
    __tablename__ = "units"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    order = Column(Integer, nullable=False)

    course = relationship("Course", back_populates="units")
    lessons = relationship(
        "Lesson",
        back_populates="unit",
        order_by="Lesson.order",
        cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Unit(id={self.id}, course_id={self.course_id}, order={self.order})>"
