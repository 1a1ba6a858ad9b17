from sqlalchemy import Column, Integer, String, Text, ForeignKey, JSON
from studykit.db.session import Base

class Flashcard(Base):
    __tablename__ = "flashcards"
    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id"), index=True, nullable=False)
    front = Column(Text, nullable=False)
    back = Column(Text, nullable=False)

class Quiz(Base):
    __tablename__ = "quizzes"
    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id"), index=True, nullable=False)
    kind = Column(String(20), nullable=False)
    difficulty = Column(String(20), nullable=False)
    questions = Column(JSON, nullable=False)

class Summary(Base):
    __tablename__ = "summaries"
    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id"), index=True, nullable=False)
    key_concepts = Column(JSON, nullable=False)
    terminology = Column(JSON, nullable=False)
    narrative = Column(Text, nullable=False)
