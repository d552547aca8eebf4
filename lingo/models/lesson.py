"""
Lesson model
"""
from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from lingo.database import Base


class Lesson(Base):
    """
    Lessons table - ordered by `order` within their unit
    """
    __tablename__ = "lessons"

    id = Column(Integer, primary_key=True, index=True)
    unit_id = Column(Integer, ForeignKey("units.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    order = Column(Integer, nullable=False)

    unit = relationship("Unit", back_populates="lessons")
    challenges = relationship(
        "Challenge",
        back_populates="lesson",
        order_by="Challenge.order",
        cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Lesson(id={self.id}, unit_id={self.unit_id}, order={self.order})>"
