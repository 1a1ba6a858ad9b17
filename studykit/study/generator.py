"""LLM-backed derivation of flashcards, quizzes and summaries from text.

Each generator builds a prompt around a capped prefix of the document,
asks the gateway for a JSON object and validates the shape before mapping
it onto plain dicts ready for the storage port. Failures surface as
``GenerationError`` carrying the operation name.
"""
import logging
from typing import Any, Dict, List, Literal

from studykit.config import settings
from studykit.errors import GenerationError
from studykit.llm.llm_gateway import chat_json

logger = logging.getLogger(__name__)

QuizKind = Literal["multiple-choice", "true-false"]
Difficulty = Literal["easy", "medium", "hard"]

QUIZ_KINDS = ("multiple-choice", "true-false")
DIFFICULTIES = ("easy", "medium", "hard")
MC_OPTION_COUNT = 4


def _cap(text: str) -> str:
    return (text or "")[: settings.llm_max_input_chars]


def _as_list(data: Any, key: str) -> list | None:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get(key), list):
        return data[key]
    return None


def _clean_str(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


# ----- flashcards -----

def generate_flashcards(text: str, n: int | None = None) -> List[Dict[str, str]]:
    n = n or settings.flashcard_count
    system = (
        "You are an expert study assistant that creates high-quality flashcards for students. "
        f"Create {n} flashcards from the provided document text. "
        "Focus on key concepts, definitions, and important details."
    )
    prompt = f"""Create flashcards from the following text.
Respond ONLY with a JSON object of the form:

{{"flashcards": [{{"front": "question or concept", "back": "answer or explanation"}}]}}

Keep the front concise and put the complete explanation on the back.

TEXT:
{_cap(text)}
"""
    data = chat_json(system, prompt, operation="flashcards")
    items = _as_list(data, "flashcards")
    if items is None:
        raise GenerationError("flashcards", "response has no 'flashcards' array")

    out = []
    for it in items:
        if not isinstance(it, dict):
            continue
        front, back = _clean_str(it.get("front")), _clean_str(it.get("back"))
        if front and back:
            out.append({"front": front, "back": back})
    if len(out) < len(items):
        logger.warning("dropped %d malformed flashcards", len(items) - len(out))
    return out


# ----- quizzes -----

def _coerce_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return None


def _coerce_index(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def validate_question(item: Any, kind: QuizKind) -> Dict[str, Any] | None:
    """Normalizes one raw question, or returns ``None`` if it is unusable.

    Multiple-choice questions need exactly ``MC_OPTION_COUNT`` non-empty
    text or numeric options and an in-range integer answer; true/false
    questions need a boolean answer and carry no options.
    """
    if not isinstance(item, dict):
        return None
    prompt = _clean_str(item.get("question") or item.get("prompt"))
    if not prompt:
        return None
    explanation = _clean_str(item.get("explanation")) or None
    answer = item.get("correctAnswer", item.get("correct_answer"))

    if kind == "multiple-choice":
        options = item.get("options")
        if not isinstance(options, list) or len(options) != MC_OPTION_COUNT:
            return None
        if not all(isinstance(o, (str, int, float)) and not isinstance(o, bool) for o in options):
            return None
        options = [_clean_str(o) if isinstance(o, str) else str(o) for o in options]
        if not all(options):
            return None
        index = _coerce_index(answer)
        if index is None or not 0 <= index < len(options):
            return None
        return {"prompt": prompt, "options": options, "correct_answer": index, "explanation": explanation}

    flag = _coerce_bool(answer)
    if flag is None:
        return None
    return {"prompt": prompt, "options": None, "correct_answer": flag, "explanation": explanation}


def generate_quiz(text: str, kind: QuizKind = "multiple-choice", difficulty: Difficulty = "medium",
                  n: int | None = None) -> Dict[str, Any]:
    """Generates a quiz and returns ``{kind, difficulty, questions}``."""
    if kind not in QUIZ_KINDS:
        raise ValueError(f"unknown quiz kind: {kind}")
    if difficulty not in DIFFICULTIES:
        raise ValueError(f"unknown difficulty: {difficulty}")
    n = n or settings.quiz_question_count
    operation = f"quiz:{kind}"

    schema_hint = {
        "multiple-choice": """{"questions": [{"question": "...", "options": ["A", "B", "C", "D"], "correctAnswer": 2, "explanation": "..."}]}""",
        "true-false": """{"questions": [{"question": "...", "correctAnswer": true, "explanation": "..."}]}""",
    }[kind]
    rules = {
        "multiple-choice": f"- Every question has exactly {MC_OPTION_COUNT} options and 'correctAnswer' is the 0-based index of the right one.",
        "true-false": "- Every question is a statement; 'correctAnswer' is a JSON boolean. Do not include 'options'.",
    }[kind]

    system = (
        f"You are an expert educator that creates high-quality {kind} questions "
        f"at {difficulty} difficulty level. Respond only with JSON."
    )
    prompt = f"""Create a {kind} quiz of {n} questions at {difficulty} difficulty from the text below.
Respond ONLY with a JSON object in the format of this example:

{schema_hint}

Rules:
{rules}
- Questions must be unambiguous and based EXCLUSIVELY on the text.
- Do not repeat questions.

TEXT:
{_cap(text)}
"""
    data = chat_json(system, prompt, operation=operation)
    items = _as_list(data, "questions")
    if items is None:
        raise GenerationError(operation, "response has no 'questions' array")

    questions = [q for q in (validate_question(it, kind) for it in items) if q is not None]
    dropped = len(items) - len(questions)
    if dropped:
        logger.warning("%s: dropped %d invalid questions", operation, dropped)
    if not questions:
        raise GenerationError(operation, "no valid questions in response")
    return {"kind": kind, "difficulty": difficulty, "questions": questions[:n]}


# ----- summary -----

def generate_summary(text: str) -> Dict[str, Any]:
    system = (
        "You are an expert educator that creates comprehensive summaries for study materials. "
        "Include key concepts, important terminology with definitions, and an overall summary."
    )
    prompt = f"""Create a comprehensive study summary from the following text.
Respond ONLY with a JSON object of the form:

{{"keyConcepts": ["..."], "terminology": [{{"term": "...", "definition": "..."}}], "summary": "one narrative paragraph"}}

TEXT:
{_cap(text)}
"""
    data = chat_json(system, prompt, operation="summary")
    if not isinstance(data, dict):
        raise GenerationError("summary", "response is not a JSON object")

    narrative = _clean_str(data.get("summary") or data.get("narrative"))
    if not narrative:
        raise GenerationError("summary", "response has no narrative")

    concepts = data.get("keyConcepts") or data.get("key_concepts") or []
    terms = data.get("terminology") or []
    if not isinstance(concepts, list) or not isinstance(terms, list):
        raise GenerationError("summary", "keyConcepts and terminology must be arrays")

    key_concepts = [c for c in (_clean_str(x) for x in concepts) if c]
    terminology = []
    for t in terms:
        if isinstance(t, dict):
            term, definition = _clean_str(t.get("term")), _clean_str(t.get("definition"))
            if term and definition:
                terminology.append({"term": term, "definition": definition})
    return {"key_concepts": key_concepts, "terminology": terminology, "narrative": narrative}
