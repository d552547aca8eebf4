"""
Course model - top of the curriculum hierarchy
"""
from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship
from lingo.database import Base


class Course(Base):
    """
    Courses table - one per language being taught
    """
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    image_src = Column(String(255), nullable=False)

    units = relationship(
        "Unit",
        back_populates="course",
        order_by="Unit.order",
        cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Course(id={self.id}, title={self.title})>"
