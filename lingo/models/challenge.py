"""
Challenge and ChallengeOption models - multiple-choice questions
"""
import enum
from sqlalchemy import Column, Integer, String, Text, Boolean, Enum, ForeignKey
from sqlalchemy.orm import relationship
from lingo.database import Base


class ChallengeType(str, enum.Enum):
    SELECT = "SELECT"
    ASSIST = "ASSIST"


class Challenge(Base):
    """
    Challenges table - ordered by `order` within their lesson
    """
    __tablename__ = "challenges"

    id = Column(Integer, primary_key=True, index=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(Enum(ChallengeType, name="challenge_type"), nullable=False)
    question = Column(Text, nullable=False)
    order = Column(Integer, nullable=False)

    lesson = relationship("Lesson", back_populates="challenges")
    options = relationship(
        "ChallengeOption",
        back_populates="challenge",
        order_by="ChallengeOption.id",
        cascade="all, delete-orphan"
    )
    progress = relationship(
        "ChallengeProgress",
        back_populates="challenge",
        cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Challenge(id={self.id}, lesson_id={self.lesson_id}, type={self.type})>"


class ChallengeOption(Base):
    """
    Challenge options table - exactly one option per challenge is expected to be correct
    """
    __tablename__ = "challenge_options"

    id = Column(Integer, primary_key=True, index=True)
    challenge_id = Column(Integer, ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    correct = Column(Boolean, nullable=False, default=False)
    image_src = Column(String(255))
    audio_src = Column(String(255))

    challenge = relationship("Challenge", back_populates="options")

    def __repr__(self):
        return f"<ChallengeOption(id={self.id}, challenge_id={self.challenge_id}, correct={self.correct})>"
