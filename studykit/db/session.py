from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from studykit.config import settings
import os

DEFAULT_URL = "sqlite:///./studykit.db"


class Base(DeclarativeBase):
    pass


def normalize_url(url: str) -> str:
    """Points bare postgres URLs (as handed out by most hosts) at psycopg 3."""
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


def build_engine(url: str, **kwargs) -> Engine:
    url = normalize_url(url)
    if url.startswith("sqlite"):
        # sessions are handed to pipeline worker threads
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True, **kwargs)


def make_session_factory(bind: Engine) -> sessionmaker:
    # rows outlive the commit that wrote them (responses, pipeline results)
    return sessionmaker(bind=bind, autoflush=False, expire_on_commit=False)


engine = build_engine(settings.database_url or os.getenv("DATABASE_URL", DEFAULT_URL))
SessionLocal = make_session_factory(engine)


def init_db(bind=None):
    from studykit.models import user, document, artifacts, stats
    Base.metadata.create_all(bind=bind or engine)
