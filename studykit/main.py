
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from studykit.middleware.ratelimit import RateLimitMiddleware, client_key
from studykit.config import settings
from studykit.db.session import SessionLocal, init_db
from studykit.errors import register_exception_handlers
from studykit.logging_config import configure_logging
from studykit.stats.badges import seed_badges
from studykit.study.runner import PipelineRunner
from studykit.auth.routes import router as auth_router
from studykit.documents.routes import router as documents_router
from studykit.stats.routes import router as stats_router
from studykit.chat.routes import router as chat_router

def create_app(
    session_factory: Callable[[], Session] = SessionLocal,
    runner: PipelineRunner | None = None,
) -> FastAPI:
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = session_factory()
        try:
            init_db(db.get_bind())
            seed_badges(db)
        finally:
            db.close()
        yield
        app.state.runner.shutdown(wait=False)

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.session_factory = session_factory
    app.state.runner = runner or PipelineRunner(session_factory, max_workers=settings.pipeline_workers)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(
        RateLimitMiddleware,
        window_seconds=settings.rate_limit_window_seconds,
        max_calls=settings.rate_limit_max_calls,
        key_func=client_key,
    )
    register_exception_handlers(app)

    app.include_router(auth_router)
    app.include_router(documents_router)
    app.include_router(stats_router)
    app.include_router(chat_router)

    @app.get("/", tags=["root"])
    def root():
        return {"name": settings.app_name, "env": settings.app_env}

    return app

app = create_app()
