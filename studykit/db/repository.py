"""Storage port consumed by the pipeline, the stats engine and the routes.

All writes go through one SQLAlchemy ``Session``; callers own the
transaction boundary (``commit``/``rollback``). Three contracts are enforced
here rather than left to callers:

* document status only moves forward (``ALLOWED_TRANSITIONS``);
* at most one achievement per ``(user_id, badge_id)``; the lookup here is
  backed by the ``uix_user_badge`` unique constraint;
* counters change through single UPDATE statements, never a read/add/write
  round trip in Python.
"""
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from studykit.errors import InvalidStatusTransition
from studykit.models.artifacts import Flashcard, Quiz, Summary
from studykit.models.document import Document, DocumentStatus, ALLOWED_TRANSITIONS
from studykit.models.stats import Badge, UserAchievement, UserStats, utcnow
from studykit.models.user import User

STAT_FIELDS = (
    "documents_uploaded",
    "flashcards_created",
    "flashcards_reviewed",
    "quizzes_completed",
    "quiz_questions_answered",
    "correct_answers",
    "total_study_time_minutes",
)


class Storage:
    def __init__(self, db: Session):
        self.db = db

    # ----- users -----
    def get_user(self, user_id: int) -> User | None:
        return self.db.get(User, user_id)

    # ----- documents -----
    def create_document(self, user_id: int, display_name: str, stored_filename: str, byte_size: int) -> Document:
        doc = Document(
            user_id=user_id,
            display_name=display_name,
            stored_filename=stored_filename,
            byte_size=byte_size,
            status=DocumentStatus.PENDING.value,
        )
        self.db.add(doc)
        self.db.flush()
        return doc

    def get_document(self, document_id: int) -> Document | None:
        return self.db.get(Document, document_id)

    def list_documents(self, user_id: int) -> list[Document]:
        stmt = (
            select(Document)
            .where(Document.user_id == user_id)
            .order_by(Document.created_at.desc(), Document.id.desc())
        )
        return list(self.db.scalars(stmt))

    def update_document_status(self, document_id: int, status: DocumentStatus) -> Document | None:
        doc = self.db.get(Document, document_id)
        if doc is None:
            return None
        current = DocumentStatus(doc.status)
        if status not in ALLOWED_TRANSITIONS[current]:
            raise InvalidStatusTransition(current.value, status.value)
        doc.status = status.value
        self.db.flush()
        return doc

    def set_extracted_text(self, document_id: int, text: str) -> None:
        doc = self.db.get(Document, document_id)
        if doc is not None:
            doc.extracted_text = text
            self.db.flush()

    # ----- artifacts -----
    def create_flashcards(self, document_id: int, cards: Iterable[dict]) -> list[Flashcard]:
        rows = [Flashcard(document_id=document_id, front=c["front"], back=c["back"]) for c in cards]
        self.db.add_all(rows)
        self.db.flush()
        return rows

    def list_flashcards(self, document_id: int) -> list[Flashcard]:
        stmt = select(Flashcard).where(Flashcard.document_id == document_id).order_by(Flashcard.id)
        return list(self.db.scalars(stmt))

    def create_quiz(self, document_id: int, kind: str, difficulty: str, questions: list[dict]) -> Quiz:
        quiz = Quiz(document_id=document_id, kind=kind, difficulty=difficulty, questions=questions)
        self.db.add(quiz)
        self.db.flush()
        return quiz

    def list_quizzes(self, document_id: int) -> list[Quiz]:
        stmt = select(Quiz).where(Quiz.document_id == document_id).order_by(Quiz.id)
        return list(self.db.scalars(stmt))

    def create_summary(self, document_id: int, key_concepts: list[str], terminology: list[dict], narrative: str) -> Summary:
        summary = Summary(
            document_id=document_id,
            key_concepts=key_concepts,
            terminology=terminology,
            narrative=narrative,
        )
        self.db.add(summary)
        self.db.flush()
        return summary

    def get_summary(self, document_id: int) -> Summary | None:
        stmt = select(Summary).where(Summary.document_id == document_id).order_by(Summary.id)
        return self.db.scalars(stmt).first()

    # ----- stats -----
    def get_user_stats(self, user_id: int) -> UserStats | None:
        return self.db.scalars(select(UserStats).where(UserStats.user_id == user_id)).first()

    def create_user_stats(self, user_id: int) -> UserStats:
        """Adds a zeroed row; raises ``IntegrityError`` if the user already has one."""
        stats = UserStats(user_id=user_id, **{f: 0 for f in STAT_FIELDS})
        self.db.add(stats)
        self.db.flush()
        return stats

    def increment_user_stat(self, user_id: int, column: str, amount: int) -> None:
        # computed by the database, so concurrent writers cannot lose updates
        col = getattr(UserStats, column)
        self.db.execute(
            update(UserStats)
            .where(UserStats.user_id == user_id)
            .values({col: col + amount, UserStats.last_updated: utcnow()})
            .execution_options(synchronize_session=False)
        )

    def raise_user_stat(self, user_id: int, column: str, value: int) -> bool:
        """Sets ``column`` to ``value`` unless that would lower it.

        Returns ``False`` (and writes nothing) when the stored value is higher.
        """
        col = getattr(UserStats, column)
        result = self.db.execute(
            update(UserStats)
            .where(UserStats.user_id == user_id, col <= value)
            .values({col: value, UserStats.last_updated: utcnow()})
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    # ----- badges -----
    def list_badges(self, category: str | None = None) -> list[Badge]:
        stmt = select(Badge).order_by(Badge.category, Badge.required_count, Badge.id)
        if category is not None:
            stmt = stmt.where(Badge.category == category)
        return list(self.db.scalars(stmt))

    def get_badge(self, badge_id: int) -> Badge | None:
        return self.db.get(Badge, badge_id)

    def get_badge_by_name(self, name: str) -> Badge | None:
        return self.db.scalars(select(Badge).where(Badge.name == name)).first()

    def create_badge(self, name: str, description: str, icon: str, category: str, required_count: int) -> Badge:
        badge = Badge(
            name=name,
            description=description,
            icon=icon,
            category=category,
            required_count=required_count,
        )
        self.db.add(badge)
        self.db.flush()
        return badge

    # ----- achievements -----
    def list_user_achievements(self, user_id: int) -> list[UserAchievement]:
        stmt = (
            select(UserAchievement)
            .where(UserAchievement.user_id == user_id)
            .order_by(UserAchievement.earned_at.desc(), UserAchievement.id.desc())
        )
        return list(self.db.scalars(stmt))

    def earned_badge_ids(self, user_id: int) -> set[int]:
        stmt = select(UserAchievement.badge_id).where(UserAchievement.user_id == user_id)
        return set(self.db.scalars(stmt))

    def create_achievement(self, user_id: int, badge_id: int) -> UserAchievement | None:
        """Returns ``None`` when the pair already exists."""
        existing = self.db.scalars(
            select(UserAchievement).where(
                UserAchievement.user_id == user_id,
                UserAchievement.badge_id == badge_id,
            )
        ).first()
        if existing is not None:
            return None
        achievement = UserAchievement(user_id=user_id, badge_id=badge_id)
        self.db.add(achievement)
        self.db.flush()
        return achievement
