"""
UserProgress model - hearts, points and active course per user
"""
from sqlalchemy import Column, Integer, String, TIMESTAMP, ForeignKey, CheckConstraint, text
from sqlalchemy.orm import relationship
from lingo.config import settings
from lingo.database import Base


class UserProgress(Base):
    """
    User progress table - created when the user first selects a course
    """
    __tablename__ = "user_progress"
    __table_args__ = (
        CheckConstraint("hearts >= 0", name="ck_user_progress_hearts_non_negative"),
        CheckConstraint("points >= 0", name="ck_user_progress_points_non_negative"),
    )

    user_id = Column(String(255), primary_key=True)
    user_name = Column(String(255), nullable=False, default="User")
    user_image_src = Column(String(255), nullable=False, default="/mascot.svg")
    active_course_id = Column(Integer, ForeignKey("courses.id", ondelete="SET NULL"), nullable=True)
    hearts = Column(Integer, nullable=False, default=settings.MAX_HEARTS)
    points = Column(Integer, nullable=False, default=0)
    updated_at = Column(TIMESTAMP, server_default=text("CURRENT_TIMESTAMP"), onupdate=text("CURRENT_TIMESTAMP"))

    active_course = relationship("Course")

    def __repr__(self):
        return f"<UserProgress(user_id={self.user_id}, hearts={self.hearts}, points={self.points})>"
