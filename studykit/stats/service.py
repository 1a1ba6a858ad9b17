"""Per-user counters and badge unlocking.

Every change to a counter is followed by a sweep over all badges the user
has not earned yet. Counters only grow, so a badge qualifies as soon as the
counter of its category reaches ``required_count`` and stays qualified.

Updates for one user are serialized with a per-user lock held across the
write and the sweep. Across processes the database does the work: counters
are bumped by a single UPDATE, the ``user_stats.user_id`` and
``uix_user_badge`` unique constraints reject a second stats row or a
duplicate award, and both conflicts are absorbed here.

Every function here commits; call them with no pending changes.
"""
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from studykit.db.repository import Storage, STAT_FIELDS
from studykit.errors import ValidationError
from studykit.models.stats import UserAchievement, UserStats

logger = logging.getLogger(__name__)

CATEGORY_STAT = {
    "document": "documents_uploaded",
    "flashcard": "flashcards_reviewed",
    "quiz": "quizzes_completed",
    "study": "total_study_time_minutes",
}

# camelCase names used by the HTTP API
STAT_ALIASES = {
    "documentsUploaded": "documents_uploaded",
    "flashcardsCreated": "flashcards_created",
    "flashcardsReviewed": "flashcards_reviewed",
    "quizzesCompleted": "quizzes_completed",
    "quizQuestionsAnswered": "quiz_questions_answered",
    "correctAnswers": "correct_answers",
    "totalStudyTime": "total_study_time_minutes",
    "totalStudyTimeMinutes": "total_study_time_minutes",
}

_registry_lock = threading.Lock()
# user_id -> [lock, number of threads holding or waiting for it]
_user_locks: dict[int, list] = {}


@contextmanager
def user_lock(user_id: int):
    """Re-entrant per-user lock, dropped from the registry once nobody needs it."""
    with _registry_lock:
        entry = _user_locks.setdefault(user_id, [threading.RLock(), 0])
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _registry_lock:
            entry[1] -= 1
            if entry[1] == 0:
                del _user_locks[user_id]


@dataclass
class StatsUpdate:
    stats: UserStats
    new_achievements: list[UserAchievement] = field(default_factory=list)


def resolve_stat_name(name: str) -> str:
    column = STAT_ALIASES.get(name, name)
    if column not in STAT_FIELDS:
        raise ValidationError(f"Unknown stat '{name}'")
    return column


def get_or_create_stats(db: Session, user_id: int) -> UserStats:
    """Returns the user's stats row, creating a zeroed one on first use."""
    storage = Storage(db)
    with user_lock(user_id):
        stats = storage.get_user_stats(user_id)
        if stats is not None:
            return stats
        try:
            stats = storage.create_user_stats(user_id)
            db.commit()
        except IntegrityError:
            # another process created it between our read and our insert
            db.rollback()
            stats = storage.get_user_stats(user_id)
            logger.info("stats row for user=%s already created elsewhere", user_id)
        return stats


def evaluate_badges(db: Session, user_id: int) -> list[UserAchievement]:
    """Awards every unearned badge whose threshold the user has reached.

    Returns only the achievements created by this call, so a second call
    with unchanged stats returns ``[]``. Each award is committed on its own;
    one that another process got to first is skipped.
    """
    storage = Storage(db)
    stats = storage.get_user_stats(user_id)
    if stats is None:
        return []
    counters = {column: getattr(stats, column) for column in CATEGORY_STAT.values()}

    earned = storage.earned_badge_ids(user_id)
    awarded = []
    for badge in storage.list_badges():
        column = CATEGORY_STAT.get(badge.category)
        if badge.id in earned or column is None or counters[column] < badge.required_count:
            continue
        badge_id = badge.id
        try:
            achievement = storage.create_achievement(user_id, badge_id)
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.info("user=%s already holds badge=%s", user_id, badge_id)
            continue
        if achievement is not None:
            logger.info("user=%s earned badge=%s", user_id, badge_id)
            awarded.append(achievement)
    return awarded


def _updated(db: Session, user_id: int) -> StatsUpdate:
    stats = Storage(db).get_user_stats(user_id)
    db.refresh(stats)
    return StatsUpdate(stats, evaluate_badges(db, user_id))


def increment_stat(db: Session, user_id: int, stat_name: str, amount: int = 1) -> StatsUpdate:
    column = resolve_stat_name(stat_name)
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise ValidationError("Increment must be a non-negative integer")

    with user_lock(user_id):
        get_or_create_stats(db, user_id)
        Storage(db).increment_user_stat(user_id, column, amount)
        db.commit()
        return _updated(db, user_id)


def set_stat(db: Session, user_id: int, stat_name: str, value: int) -> StatsUpdate:
    """Sets a counter to an absolute value; counters may not go backwards."""
    column = resolve_stat_name(stat_name)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("Stat value must be an integer")

    with user_lock(user_id):
        stats = get_or_create_stats(db, user_id)
        if not Storage(db).raise_user_stat(user_id, column, value):
            db.rollback()
            db.refresh(stats)
            raise ValidationError(f"'{stat_name}' cannot decrease from {getattr(stats, column)} to {value}")
        db.commit()
        return _updated(db, user_id)


def track_flashcard_review(db: Session, user_id: int, count: int = 1) -> StatsUpdate:
    return increment_stat(db, user_id, "flashcards_reviewed", count)


def track_quiz_completion(db: Session, user_id: int, correct: int, total: int) -> StatsUpdate:
    if correct < 0 or total < 0 or correct > total:
        raise ValidationError("Invalid quiz statistics")
    with user_lock(user_id):
        first = increment_stat(db, user_id, "quizzes_completed", 1)
        second = increment_stat(db, user_id, "quiz_questions_answered", total)
        third = increment_stat(db, user_id, "correct_answers", correct)
    return StatsUpdate(
        third.stats,
        first.new_achievements + second.new_achievements + third.new_achievements,
    )
