from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, PositiveInt

from studykit.schemas.document import DocumentOut


class StatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    documents_uploaded: int
    flashcards_created: int
    flashcards_reviewed: int
    quizzes_completed: int
    quiz_questions_answered: int
    correct_answers: int
    total_study_time_minutes: int
    last_updated: datetime | None = None


class BadgeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    icon: str
    category: str
    required_count: int


class AchievementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    badge_id: int
    earned_at: datetime | None = None
    badge: BadgeOut | None = None


class StatUpdateIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    stat_name: str = Field(min_length=1, alias="statName")
    value: int = 1
    increment: bool = True


class StudyTimeIn(BaseModel):
    minutes: PositiveInt


class TrackReviewIn(BaseModel):
    count: PositiveInt = 1


class TrackCompletionIn(BaseModel):
    correct: int = Field(ge=0)
    total: int = Field(ge=0)


class StatsUpdateOut(BaseModel):
    stats: StatsOut
    new_achievements: list[AchievementOut] = []


class DashboardOut(BaseModel):
    stats: StatsOut
    recent_documents: list[DocumentOut]
    achievements: list[AchievementOut]
    documents_count: int
