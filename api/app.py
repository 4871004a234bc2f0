"""
api/app.py — FastAPI app factory + identity middleware + static file serving
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

import config
from api.routes import router
from api.sample_questions import SAMPLE_QUESTIONS
import api.session as session
from licence_exam.services.exam_session import ExamSessionController
from licence_exam.services.question_store import (
    InMemoryQuestionStore, QuestionStore, SupabaseQuestionStore,
)
from licence_exam.services.result_sink import InMemoryResultSink, ResultSink, SupabaseResultSink
from licence_exam.services.supabase_client import SupabaseClient
from licence_exam.services.timer import AsyncioTicker, Ticker

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"


def _default_backends():
    """Hosted database when configured, otherwise in-memory stores."""
    if config.SUPABASE_URL and config.SUPABASE_KEY:
        client = SupabaseClient(config.SUPABASE_URL, config.SUPABASE_KEY, timeout=config.SUPABASE_TIMEOUT)
        logger.info(f"Using hosted database at {config.SUPABASE_URL}")
        return SupabaseQuestionStore(client), SupabaseResultSink(client), client

    logger.warning("Hosted database not configured; results are kept in memory only")
    if config.QUESTIONS_FILE:
        store = InMemoryQuestionStore.from_json_file(config.QUESTIONS_FILE)
    else:
        store = InMemoryQuestionStore(SAMPLE_QUESTIONS)
    return store, InMemoryResultSink(), None


def create_app(
    question_store: Optional[QuestionStore] = None,
    result_sink: Optional[ResultSink] = None,
    ticker_factory: Optional[Callable[[], Ticker]] = None,
) -> FastAPI:
    client: Optional[SupabaseClient] = None
    if question_store is None or result_sink is None:
        default_store, default_sink, client = _default_backends()
        question_store = question_store or default_store
        result_sink = result_sink or default_sink
    ticker_factory = ticker_factory or AsyncioTicker

    # periodic sweep of idle sessions
    async def _cleanup_loop():
        while True:
            await asyncio.sleep(config.CLEANUP_INTERVAL)
            removed = session.cleanup_expired()
            if removed:
                logger.info(f"Removed {removed} idle session(s)")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cleanup = asyncio.create_task(_cleanup_loop())
        try:
            yield
        finally:
            cleanup.cancel()
            session.clear()
            if client is not None:
                await client.aclose()

    app = FastAPI(title="Driving Licence Theory Exam", docs_url=None, redoc_url=None, lifespan=lifespan)

    app.state.question_store = question_store
    app.state.result_sink = result_sink

    def build_exam(user_id: str) -> ExamSessionController:
        return ExamSessionController(user_id, question_store, result_sink, ticker=ticker_factory())

    app.state.build_exam = build_exam

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Identity: the auth gateway in front of us forwards the authenticated user id
    @app.middleware("http")
    async def identity_middleware(request: Request, call_next):
        user_id = request.headers.get(USER_ID_HEADER, "").strip()
        request.state.user_id = user_id or None
        response: Response = await call_next(request)
        return response

    app.include_router(router)

    if os.path.isdir(config.STATIC_DIR):
        app.mount("/static", StaticFiles(directory=config.STATIC_DIR), name="static")

    @app.get("/")
    async def serve_index():
        index_path = os.path.join(config.STATIC_DIR, "index.html")
        if os.path.exists(index_path):
            return FileResponse(index_path)
        return {"error": "index.html not found"}

    @app.get("/health")
    async def health():
        return {"ok": True}

    return app
