"""
Application entrypoint.

Builds the FastAPI app: logging, CORS, the error handlers that turn
`GemBreakError` into JSON responses, the `/api` routers and `/health`. The
chat pipeline and database engine are set up in the lifespan hook.

Run with `gembreak` (console script) or `uvicorn gembreak.main:app`.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gembreak.api import admin_api, fast_api
from gembreak.api.chat_pipeline import ChatModel, ChatPipeline
from gembreak.api.gemini_client import GeminiChatModel
from gembreak.database.config.config import settings
from gembreak.database.core.db import get_engine
from gembreak.errors import GemBreakError

logging.basicConfig(level=settings.LOG_LEVEL, format="[%(asctime)s] %(levelname)s - %(message)s")
logger = logging.getLogger("gembreak")


def _default_model() -> Optional[ChatModel]:
    try:
        return GeminiChatModel()
    except RuntimeError as exc:
        logger.error("Chat model unavailable, /api/generate will fail: %s", exc)
        return None


def create_app(chat_model: Optional[ChatModel] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        chat_model: Model client for chat turns. A Gemini client configured
            from settings is created at startup when omitted.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        get_engine()
        model = chat_model if chat_model is not None else _default_model()
        app.state.pipeline = ChatPipeline(model) if model is not None else None
        logger.info("GemBreak API started (model=%s)", type(model).__name__ if model else None)
        yield

    app = FastAPI(title="GemBreak Chat API", version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(GemBreakError)
    async def gembreak_error_handler(request: Request, exc: GemBreakError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
        return JSONResponse(
            {"success": False, "error": exc.detail, "message": exc.detail},
            status_code=exc.status_code,
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("%s %s failed", request.method, request.url.path)
        return JSONResponse({"success": False, "error": str(exc), "message": str(exc)}, status_code=500)

    app.include_router(fast_api.router, prefix="/api")
    app.include_router(admin_api.router, prefix="/api")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    """Serve the app with uvicorn on port 8000."""
    import uvicorn

    uvicorn.run("gembreak.main:app", host="0.0.0.0", port=8000)
