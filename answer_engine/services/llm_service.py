"""Gemini REST client for answer generation (streaming) and text utilities.

Handles:
- Grounded answer streaming with primary/fallback model selection
- Query rephrasing for web search
- Free-form text transformation
"""
import json
import logging
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import httpx

from answer_engine.config import Settings
from answer_engine.core.exceptions import UpstreamFailure, UpstreamQuotaError
from answer_engine.schemas.answer import PersonalizationSettings, SearchResult
from answer_engine.services.gemini_stream import StreamedArrayParser, extract_text
from answer_engine.services.prompts import (
    build_answer_prompt,
    build_rephrase_prompt,
    followup_questions,
)

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[str], Awaitable[None]]

QUOTA_MARKERS = ("quota", "rate limit", "rate_limit", "exceeded", "resource_exhausted")


@dataclass
class GenerationResult:
    model_used: str
    followups: List[str] = field(default_factory=list)
    text: str = ""


def is_quota_exceeded(error: BaseException) -> bool:
    """
    Heuristically decide whether a provider error means usage exhaustion.

    Checks the provider status (429) and well-known quota phrases in both
    the error message and the raw provider details.
    """
    if isinstance(error, UpstreamQuotaError):
        return True
    if getattr(error, "upstream_status", None) == 429:
        return True
    if isinstance(error, httpx.HTTPStatusError) and error.response.status_code == 429:
        return True

    message = str(error).lower()
    details = str(getattr(error, "details", None) or "").lower()
    return any(marker in message or marker in details for marker in QUOTA_MARKERS)


class GeminiService:
    """Wrapper around the Gemini ``generateContent`` endpoints."""

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self.client = client
        self.settings = settings

    async def generate_answer(
        self,
        query: str,
        sources: Sequence[SearchResult],
        answer_style: str,
        personalization: Optional[PersonalizationSettings],
        on_chunk: ChunkCallback,
    ) -> GenerationResult:
        """
        Stream a grounded answer, falling back to a second model on quota errors.

        Args:
            query: User query
            sources: Search results used as numbered context
            answer_style: "concise" or "detailed"; overridden by personalization
            personalization: Optional tone/length/language preferences
            on_chunk: Awaited with each new piece of answer text

        Returns:
            GenerationResult with the model that produced the answer

        Raises:
            UpstreamFailure: If generation fails (after fallback when applicable)
        """
        prompt = build_answer_prompt(query, sources, answer_style, personalization)
        primary = self.settings.PRIMARY_MODEL
        fallback = self.settings.FALLBACK_MODEL

        try:
            text = await self.stream_model(primary, prompt, on_chunk)
            return GenerationResult(model_used=primary, followups=followup_questions(query), text=text)
        except Exception as e:
            logger.error("Primary model %s error: %s", primary, e)
            if not (self.settings.USE_FALLBACK_WHEN_QUOTA_EXCEEDED and is_quota_exceeded(e)):
                raise UpstreamFailure("Failed to generate AI answer") from e

        logger.warning("Quota exceeded for %s, falling back to %s", primary, fallback)
        try:
            text = await self.stream_model(fallback, prompt, on_chunk)
        except Exception as e:
            logger.error("Fallback model %s error: %s", fallback, e)
            raise UpstreamFailure(
                "Both primary and fallback models failed. Please try again later."
            ) from e
        return GenerationResult(model_used=fallback, followups=followup_questions(query), text=text)

    async def stream_model(self, model: str, prompt: str, on_chunk: ChunkCallback) -> str:
        """
        Call ``streamGenerateContent`` on one model and relay text deltas.

        Returns:
            The full generated text
        """
        body = self._request_body(
            prompt,
            temperature=self.settings.GEMINI_TEMPERATURE,
            max_tokens=self.settings.GEMINI_MAX_TOKENS,
            topK=40,
            topP=0.95,
        )
        parser = StreamedArrayParser()
        full_text = ""
        started = perf_counter()

        async with self.client.stream(
            "POST",
            self._model_url(model, "streamGenerateContent"),
            params={"key": self._api_key()},
            json=body,
        ) as response:
            if response.is_error:
                details = (await response.aread()).decode("utf-8", errors="replace")
                raise self._provider_error(response, details)

            async for text in response.aiter_text():
                for element in parser.feed(text):
                    delta = extract_text(element)
                    if delta:
                        full_text += delta
                        await on_chunk(delta)

            for element in parser.close():
                delta = extract_text(element)
                if delta:
                    full_text += delta
                    await on_chunk(delta)

        logger.debug(
            "Gemini stream %s finished: %d chars in %.2f ms",
            model,
            len(full_text),
            (perf_counter() - started) * 1000.0,
        )
        return full_text

    async def rephrase_query(self, query: str) -> str:
        """Rewrite a query for web search; returns the query itself on empty output."""
        rephrased = await self._generate_content(
            build_rephrase_prompt(query), temperature=0.3, max_tokens=100
        )
        return rephrased or query

    async def transform_text(self, text: str, action: str, prompt: str) -> str:
        """Run a single-shot completion for a text action; returns ``text`` on empty output."""
        logger.info("Transforming text: action=%s chars=%d", action, len(text))
        result = await self._generate_content(prompt, temperature=0.7, max_tokens=2048)
        return result or text

    async def _generate_content(self, prompt: str, temperature: float, max_tokens: int) -> str:
        model = self.settings.PRIMARY_MODEL
        try:
            response = await self.client.post(
                self._model_url(model, "generateContent"),
                params={"key": self._api_key()},
                json=self._request_body(prompt, temperature=temperature, max_tokens=max_tokens),
            )
        except httpx.HTTPError as e:
            raise UpstreamFailure(f"Gemini request failed: {e}") from e

        if response.is_error:
            raise self._provider_error(response, response.text)

        try:
            payload = response.json()
        except json.JSONDecodeError as e:
            raise UpstreamFailure("Gemini returned a malformed response") from e
        return (extract_text(payload) or "").strip()

    def _api_key(self) -> str:
        if not self.settings.GOOGLE_GEMINI_API_KEY:
            raise UpstreamFailure("Gemini API key is not configured")
        return self.settings.GOOGLE_GEMINI_API_KEY

    def _model_url(self, model: str, method: str) -> str:
        return f"{self.settings.GEMINI_API_BASE.rstrip('/')}/models/{model}:{method}"

    @staticmethod
    def _request_body(prompt: str, temperature: float, max_tokens: int, **extra: Any) -> Dict[str, Any]:
        generation_config: Dict[str, Any] = {"temperature": temperature, **extra}
        generation_config["maxOutputTokens"] = max_tokens
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }

    @staticmethod
    def _provider_error(response: httpx.Response, details: str) -> UpstreamFailure:
        logger.error("Gemini API error %s: %s", response.status_code, details[:500])
        message = f"Gemini API error: {response.status_code} {response.reason_phrase}"
        error = UpstreamFailure(message, upstream_status=response.status_code, details=details)
        if is_quota_exceeded(error):
            return UpstreamQuotaError(message, upstream_status=response.status_code, details=details)
        return error
