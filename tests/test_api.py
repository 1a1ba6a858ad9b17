import pytest
from sqlalchemy.exc import OperationalError

from studykit.config import settings
from studykit.db.repository import Storage
from studykit.models.document import DocumentStatus
from studykit.stats import service as stats_service

from conftest import THREE_PAGES, auth_headers, make_pdf


def _upload(client, user, content=None, content_type="application/pdf", filename="notes.pdf"):
    content = make_pdf(THREE_PAGES) if content is None else content
    return client.post(
        "/api/documents/upload",
        files={"file": (filename, content, content_type)},
        headers=auth_headers(user),
    )


def test_requests_without_token_are_unauthorized(client):
    assert client.get("/api/documents").status_code == 401
    assert client.get("/api/dashboard", headers={"Authorization": "Bearer nonsense"}).status_code == 401


def test_upload_runs_pipeline_to_completion(client, alice, fake_llm):
    response = _upload(client, alice)

    assert response.status_code == 201
    doc = response.json()
    assert doc["display_name"] == "notes.pdf"
    assert doc["user_id"] == alice.id

    polled = client.get(f"/api/documents/{doc['id']}", headers=auth_headers(alice)).json()
    assert polled["status"] == "completed"

    cards = client.get(f"/api/documents/{doc['id']}/flashcards", headers=auth_headers(alice)).json()
    assert len(cards) > 0

    quizzes = client.get(f"/api/documents/{doc['id']}/quizzes", headers=auth_headers(alice)).json()
    assert sorted((q["kind"], q["difficulty"]) for q in quizzes) == [
        ("multiple-choice", "medium"), ("true-false", "medium"),
    ]
    mc = next(q for q in quizzes if q["kind"] == "multiple-choice")
    for question in mc["questions"]:
        assert 0 <= question["correct_answer"] < len(question["options"])
    tf = next(q for q in quizzes if q["kind"] == "true-false")
    assert all(isinstance(q["correct_answer"], bool) for q in tf["questions"])

    summary = client.get(f"/api/documents/{doc['id']}/summary", headers=auth_headers(alice)).json()
    assert summary["narrative"]
    assert summary["terminology"][0]["term"] == "Chlorophyll"


def test_upload_counts_document_and_awards_first_badge(client, alice, fake_llm):
    _upload(client, alice)

    dashboard = client.get("/api/dashboard", headers=auth_headers(alice)).json()
    assert dashboard["stats"]["documents_uploaded"] == 1
    assert dashboard["documents_count"] == 1
    assert [a["badge"]["name"] for a in dashboard["achievements"]] == ["First Upload"]


def test_upload_is_processed_even_if_counting_fails(client, alice, fake_llm, monkeypatch):
    def _broken(*args, **kwargs):
        raise OperationalError("UPDATE user_stats", {}, Exception("database is locked"))

    monkeypatch.setattr(stats_service, "increment_stat", _broken)
    response = _upload(client, alice)

    assert response.status_code == 201
    polled = client.get(f"/api/documents/{response.json()['id']}", headers=auth_headers(alice)).json()
    assert polled["status"] == "completed"


def test_corrupt_upload_ends_failed_with_no_artifacts(client, alice, fake_llm):
    response = _upload(client, alice, content=b"%PDF-1.4 garbage that only looks like a pdf")
    doc_id = response.json()["id"]
    headers = auth_headers(alice)

    assert response.status_code == 201
    assert client.get(f"/api/documents/{doc_id}", headers=headers).json()["status"] == "failed"
    assert client.get(f"/api/documents/{doc_id}/flashcards", headers=headers).status_code == 404
    assert client.get(f"/api/documents/{doc_id}/quizzes", headers=headers).status_code == 404
    assert client.get(f"/api/documents/{doc_id}/summary", headers=headers).status_code == 404


def test_upload_rejects_non_pdf(client, alice):
    response = _upload(client, alice, content=b"hello", content_type="text/plain", filename="notes.txt")

    assert response.status_code == 415
    assert "pdf" in response.json()["detail"].lower()


def test_upload_requires_a_file(client, alice):
    response = client.post("/api/documents/upload", headers=auth_headers(alice))

    assert response.status_code == 400
    assert response.json()["detail"] == "No file uploaded"


def test_upload_rejects_oversized_file(client, alice, monkeypatch):
    monkeypatch.setattr(settings, "max_upload_mb", 1)

    response = _upload(client, alice, content=b"%PDF" + b"0" * (1024 * 1024))

    assert response.status_code == 413


def test_other_users_documents_are_off_limits(client, alice, bob, fake_llm):
    doc_id = _upload(client, alice).json()["id"]
    headers = auth_headers(bob)

    for suffix in ("", "/flashcards", "/quizzes", "/summary"):
        assert client.get(f"/api/documents/{doc_id}{suffix}", headers=headers).status_code in (403, 404)
    response = client.post(
        f"/api/documents/{doc_id}/quizzes",
        json={"type": "true-false", "difficulty": "easy", "numQuestions": 5},
        headers=headers,
    )
    assert response.status_code in (403, 404)
    assert client.get("/api/documents", headers=headers).json() == []


def test_missing_document_is_404(client, alice):
    response = client.get("/api/documents/4242", headers=auth_headers(alice))

    assert response.status_code == 404
    assert response.json() == {"detail": "Document not found"}


def test_documents_list_newest_first(client, alice, fake_llm):
    first = _upload(client, alice, filename="a.pdf").json()["id"]
    second = _upload(client, alice, filename="b.pdf").json()["id"]

    listed = client.get("/api/documents", headers=auth_headers(alice)).json()

    assert [d["id"] for d in listed] == [second, first]


def test_on_demand_quiz_generates_a_new_quiz(client, alice, fake_llm):
    doc_id = _upload(client, alice).json()["id"]

    response = client.post(
        f"/api/documents/{doc_id}/quizzes",
        json={"type": "true-false", "difficulty": "hard", "numQuestions": 5},
        headers=auth_headers(alice),
    )

    assert response.status_code == 201
    assert response.json()["difficulty"] == "hard"
    quizzes = client.get(f"/api/documents/{doc_id}/quizzes", headers=auth_headers(alice)).json()
    assert len(quizzes) == 3


def test_on_demand_quiz_needs_completed_document(client, alice, session_factory):
    db = session_factory()
    doc = Storage(db).create_document(alice.id, "p.pdf", "p.pdf", 1)
    db.commit()
    db.close()

    response = client.post(
        f"/api/documents/{doc.id}/quizzes",
        json={"type": "multiple-choice", "difficulty": "medium", "numQuestions": 5},
        headers=auth_headers(alice),
    )

    assert response.status_code == 409
    assert doc.status == DocumentStatus.PENDING.value


def test_stats_update_increment_and_set(client, alice):
    headers = auth_headers(alice)

    inc = client.post("/api/stats/update", json={"statName": "flashcardsReviewed", "value": 9, "increment": True}, headers=headers)
    assert inc.status_code == 200
    assert inc.json()["stats"]["flashcards_reviewed"] == 9
    assert inc.json()["new_achievements"] == []

    put = client.post("/api/stats/update", json={"statName": "flashcardsReviewed", "value": 10, "increment": False}, headers=headers)
    body = put.json()
    assert body["stats"]["flashcards_reviewed"] == 10
    assert [a["badge"]["name"] for a in body["new_achievements"]] == ["Card Rookie"]

    down = client.post("/api/stats/update", json={"statName": "flashcardsReviewed", "value": 3, "increment": False}, headers=headers)
    assert down.status_code == 400


def test_stats_update_unknown_stat(client, alice):
    response = client.post("/api/stats/update", json={"statName": "karma"}, headers=auth_headers(alice))

    assert response.status_code == 400


def test_study_time_requires_positive_minutes(client, alice):
    headers = auth_headers(alice)

    assert client.post("/api/stats/study-time", json={"minutes": 0}, headers=headers).status_code == 422

    response = client.post("/api/stats/study-time", json={"minutes": 75}, headers=headers)
    assert response.status_code == 200
    assert response.json()["stats"]["total_study_time_minutes"] == 75
    assert [a["badge"]["name"] for a in response.json()["new_achievements"]] == ["Focused"]


def test_tracking_endpoints(client, alice):
    headers = auth_headers(alice)

    review = client.post("/api/flashcards/track-review", json={"count": 3}, headers=headers)
    assert review.json()["stats"]["flashcards_reviewed"] == 3

    done = client.post("/api/quizzes/track-completion", json={"correct": 4, "total": 5}, headers=headers)
    stats = done.json()["stats"]
    assert (stats["quizzes_completed"], stats["quiz_questions_answered"], stats["correct_answers"]) == (1, 5, 4)

    achievements = client.get("/api/achievements", headers=headers).json()
    assert [a["badge"]["name"] for a in achievements] == ["Quiz Taker"]


def test_dashboard_creates_stats_lazily(client, alice):
    body = client.get("/api/dashboard", headers=auth_headers(alice)).json()

    assert body["stats"]["documents_uploaded"] == 0
    assert body["recent_documents"] == []
    assert body["achievements"] == []


def test_badge_catalog_endpoints(client, alice):
    headers = auth_headers(alice)

    assert len(client.get("/api/badges", headers=headers).json()) == 12
    quiz_badges = client.get("/api/badges/category/quiz", headers=headers).json()
    assert {b["category"] for b in quiz_badges} == {"quiz"}
    assert [b["required_count"] for b in quiz_badges] == [1, 10, 50]
    assert client.get("/api/badges/category/music", headers=headers).status_code == 400


def test_chat_returns_assistant_reply(client, monkeypatch):
    from studykit.chat import routes as chat_routes
    monkeypatch.setattr(chat_routes, "chat", lambda system, message, operation: f"echo: {message}")

    response = client.post("/api/chat", json={"message": "How do I memorize faster?"})

    assert response.status_code == 200
    assert response.json() == {"response": "echo: How do I memorize faster?"}


@pytest.mark.parametrize("message", ["", "   "])
def test_chat_rejects_blank_message(client, message):
    response = client.post("/api/chat", json={"message": message})

    assert response.status_code == 400
    assert response.json() == {"detail": "Missing or invalid message"}
