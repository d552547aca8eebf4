"""
ChallengeProgress model - per-user completion of a challenge
"""
from sqlalchemy import Column, Integer, String, Boolean, TIMESTAMP, ForeignKey, UniqueConstraint, text
from sqlalchemy.orm import relationship
from lingo.database import Base


class ChallengeProgress(Base):
    """
    Challenge progress table

    A row existing for (user, challenge) means the challenge was attempted
    before, which makes any further attempt a practice attempt.
    """
    __tablename__ = "challenge_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "challenge_id", name="uq_challenge_progress_user_challenge"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=False, index=True)
    challenge_id = Column(Integer, ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    updated_at = Column(TIMESTAMP, server_default=text("CURRENT_TIMESTAMP"), onupdate=text("CURRENT_TIMESTAMP"))

    challenge = relationship("Challenge", back_populates="progress")

    def __repr__(self):
        return f"<ChallengeProgress(user_id={self.user_id}, challenge_id={self.challenge_id}, completed={self.completed})>"
