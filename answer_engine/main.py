"""FastAPI application entry point for the answer engine API."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from answer_engine.api.routes.answer import router as answer_router
from answer_engine.api.routes.assist import router as assist_router
from answer_engine.api.routes.conversations import router as conversations_router
from answer_engine.config import Settings, get_settings
from answer_engine.core.exceptions import AnswerEngineError, RateLimitedError
from answer_engine.core.identity import QueryParamOwnerResolver
from answer_engine.database import create_db_engine, init_db
from answer_engine.services.answer_relay import AnswerRelay
from answer_engine.services.conversation_service import ConversationService
from answer_engine.services.llm_service import GeminiService
from answer_engine.services.rate_limiter import RateLimiter
from answer_engine.services.search_service import SearchService

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="[%(asctime)s] %(levelname)s %(name)s - %(message)s",
    )


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    """Shared client for provider calls; providers never get unbounded waits."""
    timeout = httpx.Timeout(
        settings.UPSTREAM_TIMEOUT_SECONDS,
        connect=settings.UPSTREAM_CONNECT_TIMEOUT_SECONDS,
    )
    return httpx.AsyncClient(timeout=timeout)


def create_app(
    settings: Optional[Settings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Build the application and its collaborators.

    Args:
        settings: Configuration; read from the environment when omitted
        http_client: Client for provider calls; one is created (and closed
            on shutdown) when omitted
    """
    settings = settings or get_settings()
    engine = create_db_engine(settings.DATABASE_URL)
    owns_client = http_client is None
    client = http_client or build_http_client(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(engine)
        try:
            yield
        finally:
            if owns_client:
                await client.aclose()
            engine.dispose()

    app = FastAPI(
        title="Answer Engine API",
        description="Web-grounded streaming answers with conversation history",
        version="1.0.0",
        lifespan=lifespan,
    )

    search_service = SearchService(client, settings)
    llm_service = GeminiService(client, settings)

    app.state.settings = settings
    app.state.engine = engine
    app.state.http_client = client
    app.state.search_service = search_service
    app.state.llm_service = llm_service
    app.state.answer_relay = AnswerRelay(search_service, llm_service)
    app.state.rate_limiter = RateLimiter(
        max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        max_tracked_keys=settings.RATE_LIMIT_MAX_TRACKED_KEYS,
    )
    app.state.conversation_service = ConversationService()
    app.state.owner_resolver = QueryParamOwnerResolver(settings.DEFAULT_OWNER_ID)

    allow_all = settings.cors_origins == ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    app.include_router(answer_router)
    app.include_router(assist_router)
    app.include_router(conversations_router)

    @app.exception_handler(AnswerEngineError)
    async def answer_engine_exception_handler(request: Request, exc: AnswerEngineError):
        headers = None
        if isinstance(exc, RateLimitedError):
            headers = {"Retry-After": str(exc.retry_after_seconds)}
        if exc.http_status >= 500:
            logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
        return JSONResponse(
            status_code=exc.http_status,
            content={"error": exc.message, "code": exc.code},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = f"Invalid {location}: {first.get('msg', 'validation failed')}" if location else "Invalid request"
        return JSONResponse(status_code=400, content={"error": message, "code": "INVALID_REQUEST"})

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Hide internal error details from clients."""
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return app


configure_logging(get_settings().LOG_LEVEL)
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
