import io

import pytest
from fastapi.testclient import TestClient
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from sqlalchemy.pool import StaticPool

from studykit.config import settings
from studykit.db.session import build_engine, init_db, make_session_factory
from studykit.main import create_app
from studykit.models.user import User
from studykit.stats.badges import seed_badges
from studykit.study import generator
from studykit.study.runner import PipelineRunner
from studykit.utils.security import create_access_token


def make_pdf(pages):
    """Builds a PDF with one page per string in ``pages``."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    for text in pages:
        y = 800
        for line in text.splitlines():
            c.drawString(72, y, line)
            y -= 16
        c.showPage()
    c.save()
    return buf.getvalue()


THREE_PAGES = [
    "Photosynthesis converts light energy into chemical energy.",
    "Chlorophyll absorbs mostly blue and red light.",
    "The Calvin cycle fixes carbon dioxide into sugars.",
]


def _seeded_factory(engine):
    init_db(engine)
    factory = make_session_factory(engine)
    db = factory()
    seed_badges(db)
    db.close()
    return factory


@pytest.fixture()
def session_factory():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    yield _seeded_factory(engine)
    engine.dispose()


@pytest.fixture()
def file_session_factory(tmp_path):
    """A real file database so that threads get their own connections."""
    engine = build_engine(f"sqlite:///{tmp_path / 'threads.db'}", connect_args={"check_same_thread": False, "timeout": 30})
    yield _seeded_factory(engine)
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def _make_user(db, name, email):
    user = User(name=name, email=email, password_hash="not-a-real-hash")
    db.add(user)
    db.commit()
    return user


@pytest.fixture()
def alice(db):
    return _make_user(db, "Alice", "alice@example.com")


@pytest.fixture()
def bob(db):
    return _make_user(db, "Bob", "bob@example.com")


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path / "uploads"))
    return tmp_path / "uploads"


def fake_llm_response(operation):
    if operation == "flashcards":
        return {"flashcards": [
            {"front": "What does photosynthesis produce?", "back": "Chemical energy stored as sugar."},
            {"front": "Which pigment absorbs light?", "back": "Chlorophyll."},
        ]}
    if operation == "quiz:multiple-choice":
        return {"questions": [
            {"question": "Which light does chlorophyll absorb most?",
             "options": ["Green", "Blue and red", "Infrared", "Ultraviolet"],
             "correctAnswer": 1, "explanation": "Green is reflected."},
        ]}
    if operation == "quiz:true-false":
        return {"questions": [
            {"question": "The Calvin cycle fixes carbon dioxide.", "correctAnswer": True},
        ]}
    if operation == "summary":
        return {
            "keyConcepts": ["Photosynthesis", "Calvin cycle"],
            "terminology": [{"term": "Chlorophyll", "definition": "Green pigment absorbing light."}],
            "summary": "Plants turn light into chemical energy through photosynthesis.",
        }
    raise AssertionError(f"unexpected operation {operation}")


@pytest.fixture()
def fake_llm(monkeypatch):
    calls = []

    def _chat_json(system, user, operation, temperature=None):
        calls.append((operation, user))
        return fake_llm_response(operation)

    monkeypatch.setattr(generator, "chat_json", _chat_json)
    return calls


@pytest.fixture()
def client(session_factory):
    app = create_app(session_factory, runner=PipelineRunner(session_factory, max_workers=0))
    with TestClient(app) as test_client:
        yield test_client
