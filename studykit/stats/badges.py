import logging
from sqlalchemy.orm import Session
from studykit.db.repository import Storage

logger = logging.getLogger(__name__)

BADGE_CATEGORIES = ("document", "flashcard", "quiz", "study")

# name, description, icon, category, required_count
BADGE_CATALOG = [
    ("First Upload", "Upload your first document", "file-up", "document", 1),
    ("Bookworm", "Upload 5 documents", "book-open", "document", 5),
    ("Librarian", "Upload 20 documents", "library", "document", 20),
    ("Card Rookie", "Review 10 flashcards", "layers", "flashcard", 10),
    ("Card Shark", "Review 50 flashcards", "zap", "flashcard", 50),
    ("Memory Master", "Review 200 flashcards", "brain", "flashcard", 200),
    ("Quiz Taker", "Complete your first quiz", "check-circle", "quiz", 1),
    ("Quiz Whiz", "Complete 10 quizzes", "award", "quiz", 10),
    ("Quiz Champion", "Complete 50 quizzes", "trophy", "quiz", 50),
    ("Focused", "Study for 60 minutes", "clock", "study", 60),
    ("Dedicated", "Study for 5 hours", "timer", "study", 300),
    ("Scholar", "Study for 20 hours", "graduation-cap", "study", 1200),
]


def seed_badges(db: Session) -> int:
    """Inserts missing catalog badges by name. Returns how many were added."""
    storage = Storage(db)
    added = 0
    for name, description, icon, category, required_count in BADGE_CATALOG:
        if storage.get_badge_by_name(name) is None:
            storage.create_badge(name, description, icon, category, required_count)
            added += 1
    db.commit()
    if added:
        logger.info("seeded %d badges", added)
    return added
