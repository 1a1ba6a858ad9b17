"""Extract -> generate -> persist for one uploaded document.

The pipeline runs detached from the request that scheduled it, so it opens
its own session and never raises: every failure is logged and recorded as
the document's ``failed`` status. Artifacts are staged in one transaction
and committed together with ``completed``; a failure rolls them back, so a
failed document never carries partial artifacts.
"""
import logging
import os
from typing import Callable

from sqlalchemy.orm import Session

from studykit.db.repository import Storage
from studykit.errors import ExtractionError, StudyKitError
from studykit.models.document import DocumentStatus
from studykit.stats import service as stats_service
from studykit.study import generator
from studykit.study.extractor import extract_text

logger = logging.getLogger(__name__)

QUIZ_PLAN = (("multiple-choice", "medium"), ("true-false", "medium"))


def _run_steps(db: Session, storage: Storage, file_path: str | os.PathLike, document_id: int) -> int:
    text = extract_text(file_path)
    if not text.strip():
        raise ExtractionError("no extractable text")
    storage.set_extracted_text(document_id, text)

    cards = generator.generate_flashcards(text)
    if not cards:
        logger.warning("document=%s: no flashcards generated", document_id)
    storage.create_flashcards(document_id, cards)

    for kind, difficulty in QUIZ_PLAN:
        quiz = generator.generate_quiz(text, kind=kind, difficulty=difficulty)
        storage.create_quiz(document_id, quiz["kind"], quiz["difficulty"], quiz["questions"])

    summary = generator.generate_summary(text)
    storage.create_summary(document_id, summary["key_concepts"], summary["terminology"], summary["narrative"])
    return len(cards)


def process_document(file_path: str | os.PathLike, document_id: int,
                     session_factory: Callable[[], Session]) -> DocumentStatus | None:
    """Runs the whole pipeline and returns the final status.

    Returns ``None`` if the document does not exist or was not pending.
    """
    db = session_factory()
    try:
        storage = Storage(db)
        doc = storage.get_document(document_id)
        if doc is None:
            logger.error("document=%s not found, pipeline skipped", document_id)
            return None
        if doc.status != DocumentStatus.PENDING.value:
            logger.warning("document=%s is %s, pipeline skipped", document_id, doc.status)
            return None
        owner_id = doc.user_id

        storage.update_document_status(document_id, DocumentStatus.PROCESSING)
        db.commit()
        logger.info("document=%s processing", document_id)

        try:
            card_count = _run_steps(db, storage, file_path, document_id)
            storage.update_document_status(document_id, DocumentStatus.COMPLETED)
            db.commit()
        except StudyKitError as e:
            db.rollback()
            logger.error("document=%s failed: %s", document_id, e.detail)
            storage.update_document_status(document_id, DocumentStatus.FAILED)
            db.commit()
            return DocumentStatus.FAILED
        except Exception:
            db.rollback()
            logger.exception("document=%s failed unexpectedly", document_id)
            storage.update_document_status(document_id, DocumentStatus.FAILED)
            db.commit()
            return DocumentStatus.FAILED

        logger.info("document=%s completed with %d flashcards", document_id, card_count)
        if card_count:
            try:
                stats_service.increment_stat(db, owner_id, "flashcards_created", card_count)
            except Exception:
                db.rollback()
                logger.exception("document=%s: could not count %d flashcards for user=%s",
                                 document_id, card_count, owner_id)
        return DocumentStatus.COMPLETED
    finally:
        db.close()
