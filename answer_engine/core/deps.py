"""FastAPI dependencies resolving per-request collaborators from app state."""
from typing import Generator

from fastapi import Request
from sqlmodel import Session

from answer_engine.config import Settings
from answer_engine.services.answer_relay import AnswerRelay
from answer_engine.services.conversation_service import ConversationService
from answer_engine.services.llm_service import GeminiService
from answer_engine.services.rate_limiter import RateLimiter


def get_db(request: Request) -> Generator[Session, None, None]:
    """Yield a database session bound to the application engine."""
    with Session(request.app.state.engine) as session:
        yield session


def get_owner_id(request: Request) -> int:
    return request.app.state.owner_resolver.resolve_owner_id(request)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_answer_relay(request: Request) -> AnswerRelay:
    return request.app.state.answer_relay


def get_llm_service(request: Request) -> GeminiService:
    return request.app.state.llm_service


def get_conversation_service(request: Request) -> ConversationService:
    return request.app.state.conversation_service


def client_address(request: Request) -> str:
    """Best-effort client IP, honouring reverse proxy headers."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
