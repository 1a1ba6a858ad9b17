"""Per-user counters, the badge catalog and earned achievements."""
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint
from studykit.db.session import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserStats(Base):
    __tablename__ = "user_stats"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    documents_uploaded = Column(Integer, nullable=False, default=0)
    flashcards_created = Column(Integer, nullable=False, default=0)
    flashcards_reviewed = Column(Integer, nullable=False, default=0)
    quizzes_completed = Column(Integer, nullable=False, default=0)
    quiz_questions_answered = Column(Integer, nullable=False, default=0)
    correct_answers = Column(Integer, nullable=False, default=0)
    total_study_time_minutes = Column(Integer, nullable=False, default=0)
    last_updated = Column(DateTime, default=utcnow, onupdate=utcnow)


class Badge(Base):
    __tablename__ = "badges"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), unique=True, nullable=False)
    description = Column(Text, nullable=False)
    icon = Column(String(60), nullable=False)
    category = Column(String(20), index=True, nullable=False)
    required_count = Column(Integer, nullable=False)


class UserAchievement(Base):
    __tablename__ = "user_achievements"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    badge_id = Column(Integer, ForeignKey("badges.id"), nullable=False)
    earned_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "badge_id", name="uix_user_badge"),
    )
