
import logging
import os
import uuid

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studykit.auth.deps import get_db, get_current_user
from studykit.config import settings
from studykit.db.repository import Storage
from studykit.errors import AuthorizationError, NotFoundError, ValidationError
from studykit.models.document import Document, DocumentStatus
from studykit.models.user import User
from studykit.schemas.document import DocumentOut, FlashcardOut, QuizCreate, QuizOut, SummaryOut
from studykit.stats import service as stats_service
from studykit.study import generator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents", tags=["documents"])

PDF_MIMETYPE = "application/pdf"


def get_owned_document(storage: Storage, user: User, doc_id: int) -> Document:
    doc = storage.get_document(doc_id)
    if doc is None:
        raise NotFoundError("Document not found")
    if doc.user_id != user.id:
        raise AuthorizationError("Access denied")
    return doc


@router.get("", response_model=list[DocumentOut])
def list_documents(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return Storage(db).list_documents(user.id)


@router.post("/upload", response_model=DocumentOut, status_code=201)
async def upload_document(
    request: Request,
    file: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if file is None or not file.filename:
        raise ValidationError("No file uploaded")
    if file.content_type != PDF_MIMETYPE:
        raise ValidationError("Only PDF files are allowed", status_code=415)

    max_bytes = settings.max_upload_mb * 1024 * 1024
    data = await file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise ValidationError(f"File larger than {settings.max_upload_mb}MB", status_code=413)
    if not data:
        raise ValidationError("Uploaded file is empty")

    os.makedirs(settings.upload_dir, exist_ok=True)
    stored_filename = f"{uuid.uuid4().hex}.pdf"
    path = os.path.join(settings.upload_dir, stored_filename)
    with open(path, "wb") as fh:
        fh.write(data)

    storage = Storage(db)
    doc = storage.create_document(user.id, os.path.basename(file.filename), stored_filename, len(data))
    db.commit()
    logger.info("user=%s uploaded document=%s (%d bytes)", user.id, doc.id, len(data))

    request.app.state.runner.submit(path, doc.id)
    try:
        stats_service.increment_stat(db, user.id, "documents_uploaded", 1)
    except SQLAlchemyError:
        # the document is stored and scheduled; only the counter is lost
        db.rollback()
        logger.exception("user=%s: could not count upload of document=%s", user.id, doc.id)
    return doc


@router.get("/{doc_id}", response_model=DocumentOut)
def get_document(doc_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return get_owned_document(Storage(db), user, doc_id)


@router.get("/{doc_id}/flashcards", response_model=list[FlashcardOut])
def get_flashcards(doc_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    storage = Storage(db)
    get_owned_document(storage, user, doc_id)
    cards = storage.list_flashcards(doc_id)
    if not cards:
        raise NotFoundError("No flashcards for this document yet")
    return cards


@router.get("/{doc_id}/quizzes", response_model=list[QuizOut])
def get_quizzes(doc_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    storage = Storage(db)
    get_owned_document(storage, user, doc_id)
    quizzes = storage.list_quizzes(doc_id)
    if not quizzes:
        raise NotFoundError("No quizzes for this document yet")
    return quizzes


@router.post("/{doc_id}/quizzes", response_model=QuizOut, status_code=201)
def create_quiz(doc_id: int, body: QuizCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    storage = Storage(db)
    doc = get_owned_document(storage, user, doc_id)
    if doc.status != DocumentStatus.COMPLETED.value or not doc.extracted_text:
        raise HTTPException(status_code=409, detail="Document has not finished processing")

    payload = generator.generate_quiz(doc.extracted_text, kind=body.type, difficulty=body.difficulty, n=body.num_questions)
    quiz = storage.create_quiz(doc_id, payload["kind"], payload["difficulty"], payload["questions"])
    db.commit()
    return quiz


@router.get("/{doc_id}/summary", response_model=SummaryOut)
def get_summary(doc_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    storage = Storage(db)
    get_owned_document(storage, user, doc_id)
    summary = storage.get_summary(doc_id)
    if summary is None:
        raise NotFoundError("Summary not found")
    return summary
