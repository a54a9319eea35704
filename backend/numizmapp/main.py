"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.orm import sessionmaker

from numizmapp.config import get_settings
from numizmapp.routers import chat, inbox, session
from numizmapp.services.runtime import build_runtime

logger = logging.getLogger(__name__)


def _warm_backend_state(session_factory: sessionmaker) -> None:
    """Prime the DB connection at process start."""

    try:
        with session_factory() as db:
            db.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Backend warm-up failed; continuing without startup pre-warm.")


def create_app(session_factory: sessionmaker | None = None) -> FastAPI:
    """Build the API around ``session_factory`` (defaults to the configured database)."""

    settings = get_settings()
    logging.getLogger("numizmapp").setLevel(settings.log_level.upper())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        factory = session_factory
        if factory is None:
            from numizmapp.db.session import SessionLocal

            factory = SessionLocal
        _warm_backend_state(factory)
        app.state.runtime = build_runtime(factory, settings=settings)
        yield
        await app.state.runtime.shutdown()

    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(session.router, tags=["session"])
    app.include_router(inbox.router, tags=["inbox"])
    app.include_router(chat.router, tags=["chat"])

    @app.get("/health")
    def health() -> dict[str, str]:
        """Simple health check endpoint."""

        return {"status": "ok"}

    return app


app = create_app()
