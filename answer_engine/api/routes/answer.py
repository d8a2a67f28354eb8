"""Answer streaming endpoint.

Provides:
- POST /api/answer - Search the web and stream a cited answer as SSE
"""
import json
import logging
from typing import Any, AsyncIterator, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from answer_engine.core.deps import client_address, get_answer_relay, get_rate_limiter
from answer_engine.core.exceptions import ClientInputError, RateLimitedError
from answer_engine.schemas.answer import AnswerRequest, encode_sse
from answer_engine.services.answer_relay import AnswerRelay
from answer_engine.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["answer"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


async def read_json_object(request: Request) -> Dict[str, Any]:
    """Parse the request body as a JSON object or raise INVALID_BODY."""
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ClientInputError("Request body must be valid JSON", code="INVALID_BODY")
    if not isinstance(payload, dict):
        raise ClientInputError("Request body must be a JSON object", code="INVALID_BODY")
    return payload


@router.post("/answer", summary="Stream a cited answer")
async def stream_answer(
    request: Request,
    relay: AnswerRelay = Depends(get_answer_relay),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
) -> StreamingResponse:
    """
    Answer a query from live web results.

    Flow:
    1. Validate query
    2. Check rate limit for the client address
    3. Open the event stream and relay sources, tokens, model, follow-ups

    Raises:
        ClientInputError: 400 if body or query is invalid
        RateLimitedError: 429 with Retry-After if the client is over its limit
    """
    payload = await read_json_object(request)

    query = payload.get("query")
    if not isinstance(query, str) or not query.strip():
        raise ClientInputError("Query is required", code="MISSING_QUERY")

    try:
        body = AnswerRequest.model_validate(payload)
    except ValidationError as e:
        raise ClientInputError(f"Invalid request body: {e.errors()[0]['msg']}", code="INVALID_BODY")

    client_ip = client_address(request)
    decision = rate_limiter.admit(client_ip)
    if not decision.allowed:
        logger.warning('[RATE LIMIT] IP: %s, Query: "%.50s"', client_ip, query)
        raise RateLimitedError(decision.retry_after_seconds)

    logger.info(
        '[REQUEST] Query: "%s", Style: %s, IP: %s, Personalization: %s',
        body.query,
        body.answer_style,
        client_ip,
        body.personalization.model_dump() if body.personalization else None,
    )

    async def event_generator() -> AsyncIterator[str]:
        events = relay.stream(body.query, body.answer_style, body.personalization)
        try:
            async for event in events:
                if await request.is_disconnected():
                    logger.info("Client disconnected, stopping answer stream")
                    break
                yield encode_sse(event)
        finally:
            await events.aclose()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
