
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field

class DocumentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    display_name: str
    byte_size: int
    status: str
    created_at: datetime | None = None

class FlashcardOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    document_id: int
    front: str
    back: str

class QuestionOut(BaseModel):
    prompt: str
    options: list[str] | None = None
    correct_answer: int | bool
    explanation: str | None = None

class QuizOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    document_id: int
    kind: str
    difficulty: str
    questions: list[QuestionOut]

class QuizCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["multiple-choice", "true-false"]
    difficulty: Literal["easy", "medium", "hard"]
    num_questions: int = Field(10, ge=1, le=30, alias="numQuestions")

class TermOut(BaseModel):
    term: str
    definition: str

class SummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    document_id: int
    key_concepts: list[str]
    terminology: list[TermOut]
    narrative: str
