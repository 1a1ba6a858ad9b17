
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from studykit.auth.deps import get_db, get_current_user
from studykit.db.repository import Storage
from studykit.errors import ValidationError
from studykit.models.stats import UserAchievement
from studykit.models.user import User
from studykit.schemas.document import DocumentOut
from studykit.schemas.stats import (
    AchievementOut, BadgeOut, DashboardOut, StatsOut, StatsUpdateOut,
    StatUpdateIn, StudyTimeIn, TrackCompletionIn, TrackReviewIn,
)
from studykit.stats import service
from studykit.stats.badges import BADGE_CATEGORIES

router = APIRouter(prefix="/api", tags=["stats"])

RECENT_DOCUMENTS = 5


def _achievement_out(storage: Storage, achievement: UserAchievement) -> AchievementOut:
    out = AchievementOut.model_validate(achievement)
    badge = storage.get_badge(achievement.badge_id)
    out.badge = BadgeOut.model_validate(badge) if badge else None
    return out


def _update_out(storage: Storage, update: service.StatsUpdate) -> StatsUpdateOut:
    return StatsUpdateOut(
        stats=StatsOut.model_validate(update.stats),
        new_achievements=[_achievement_out(storage, a) for a in update.new_achievements],
    )


@router.post("/stats/update", response_model=StatsUpdateOut)
def update_stat(body: StatUpdateIn, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if body.increment:
        update = service.increment_stat(db, user.id, body.stat_name, body.value)
    else:
        update = service.set_stat(db, user.id, body.stat_name, body.value)
    return _update_out(Storage(db), update)


@router.post("/stats/study-time", response_model=StatsUpdateOut)
def record_study_time(body: StudyTimeIn, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    update = service.increment_stat(db, user.id, "total_study_time_minutes", body.minutes)
    return _update_out(Storage(db), update)


@router.post("/flashcards/track-review", response_model=StatsUpdateOut)
def track_review(body: TrackReviewIn, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _update_out(Storage(db), service.track_flashcard_review(db, user.id, body.count))


@router.post("/quizzes/track-completion", response_model=StatsUpdateOut)
def track_completion(body: TrackCompletionIn, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    update = service.track_quiz_completion(db, user.id, body.correct, body.total)
    return _update_out(Storage(db), update)


@router.get("/dashboard", response_model=DashboardOut)
def dashboard(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    storage = Storage(db)
    stats = service.get_or_create_stats(db, user.id)
    documents = storage.list_documents(user.id)
    return DashboardOut(
        stats=StatsOut.model_validate(stats),
        recent_documents=[DocumentOut.model_validate(d) for d in documents[:RECENT_DOCUMENTS]],
        achievements=[_achievement_out(storage, a) for a in storage.list_user_achievements(user.id)],
        documents_count=len(documents),
    )


@router.get("/badges", response_model=list[BadgeOut])
def list_badges(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return Storage(db).list_badges()


@router.get("/badges/category/{category}", response_model=list[BadgeOut])
def list_badges_by_category(category: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if category not in BADGE_CATEGORIES:
        raise ValidationError(f"Unknown badge category '{category}'")
    return Storage(db).list_badges(category)


@router.get("/achievements", response_model=list[AchievementOut])
def list_achievements(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    storage = Storage(db)
    return [_achievement_out(storage, a) for a in storage.list_user_achievements(user.id)]
