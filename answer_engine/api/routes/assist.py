"""Single-shot LLM helpers.

Provides:
- POST /api/rephrase - Rewrite a query for web search
- POST /api/transform - Apply a text action (summarize, simplify, ...) to an answer
"""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from answer_engine.api.routes.answer import read_json_object
from answer_engine.core.deps import get_llm_service
from answer_engine.core.exceptions import ClientInputError, UpstreamFailure
from answer_engine.services.llm_service import GeminiService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["assist"])


@router.post("/rephrase")
async def rephrase(request: Request, llm: GeminiService = Depends(get_llm_service)):
    """
    Rephrase a query.

    On provider failure the original query is still returned (status 500)
    so the client can carry on with it.
    """
    payload = await read_json_object(request)
    query = payload.get("query")
    if not query or not isinstance(query, str):
        raise ClientInputError("Query is required", code="MISSING_QUERY")

    try:
        rephrased = await llm.rephrase_query(query)
    except UpstreamFailure as e:
        logger.error("Rephrase API error: %s", e)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to rephrase query", "rephrased": query},
        )

    return {"rephrased": rephrased}


@router.post("/transform")
async def transform(request: Request, llm: GeminiService = Depends(get_llm_service)):
    """Run the caller-built prompt once; echoes ``text`` back if the model returns nothing."""
    payload = await read_json_object(request)
    text = payload.get("text")
    action = payload.get("action")
    prompt = payload.get("prompt")
    if not text or not action or not prompt:
        raise ClientInputError("Text, action, and prompt are required", code="MISSING_FIELDS")

    try:
        result = await llm.transform_text(str(text), str(action), str(prompt))
    except UpstreamFailure as e:
        logger.error("Transform API error: %s", e)
        return JSONResponse(status_code=500, content={"error": "Failed to transform text"})

    return {"result": result}
