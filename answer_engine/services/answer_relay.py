"""Search-then-generate orchestration behind POST /api/answer.

One relay run walks ADMITTED -> SEARCHING -> SOURCES_SENT -> GENERATING and
ends in DONE or FAILED. Events come out in strict phase order: one
``sources``, the ``token`` events in generation order, then either
``modelUsed`` + ``followups`` + ``done`` or a single ``error``.
"""
import asyncio
import logging
from enum import Enum
from time import perf_counter
from typing import AsyncIterator, Optional

from answer_engine.schemas.answer import (
    DoneEvent,
    ErrorEvent,
    FollowupsEvent,
    ModelUsedEvent,
    PersonalizationSettings,
    SourcesEvent,
    StreamEvent,
    TokenEvent,
)
from answer_engine.services.llm_service import GeminiService
from answer_engine.services.search_service import SearchService

logger = logging.getLogger(__name__)

# Chunks generated but not yet written to the client
MAX_PENDING_CHUNKS = 64


class RelayState(str, Enum):
    ADMITTED = "admitted"
    SEARCHING = "searching"
    SOURCES_SENT = "sources_sent"
    GENERATING = "generating"
    DONE = "done"
    FAILED = "failed"


def _elapsed_ms(started: float) -> float:
    return (perf_counter() - started) * 1000.0


class AnswerRelay:
    """Multiplexes search results and a streamed LLM answer into StreamEvents."""

    def __init__(
        self,
        search_service: SearchService,
        llm_service: GeminiService,
        max_pending_chunks: int = MAX_PENDING_CHUNKS,
    ):
        self.search_service = search_service
        self.llm_service = llm_service
        self.max_pending_chunks = max_pending_chunks

    async def stream(
        self,
        query: str,
        answer_style: str = "concise",
        personalization: Optional[PersonalizationSettings] = None,
    ) -> AsyncIterator[StreamEvent]:
        """
        Run one admitted request and yield its events.

        Closing the generator early (client disconnect) cancels the
        generation call; no further events are produced.
        """
        started = perf_counter()
        state = RelayState.ADMITTED

        state = self._transition(state, RelayState.SEARCHING)
        search_started = perf_counter()
        sources = await self.search_service.search(query)
        logger.info("[SEARCH] Duration: %.0f ms, Results: %d", _elapsed_ms(search_started), len(sources))
        if not sources:
            logger.warning("No search results available for query: %s", query)

        state = self._transition(state, RelayState.SOURCES_SENT)
        yield SourcesEvent(sources=sources)

        state = self._transition(state, RelayState.GENERATING)
        generation_started = perf_counter()
        chunks: asyncio.Queue = asyncio.Queue(maxsize=self.max_pending_chunks)
        generation = asyncio.create_task(
            self.llm_service.generate_answer(query, sources, answer_style, personalization, chunks.put)
        )

        try:
            while True:
                next_chunk = asyncio.ensure_future(chunks.get())
                try:
                    await asyncio.wait({next_chunk, generation}, return_when=asyncio.FIRST_COMPLETED)
                finally:
                    if not next_chunk.done():
                        next_chunk.cancel()
                if next_chunk.done() and not next_chunk.cancelled():
                    yield TokenEvent(content=next_chunk.result())
                    continue
                break

            # Generation finished; flush what it queued before returning
            while not chunks.empty():
                yield TokenEvent(content=chunks.get_nowait())

            result = generation.result()
        except Exception as e:
            state = self._transition(state, RelayState.FAILED)
            logger.error(
                "[ERROR] Type: %s, Message: %s, Duration: %.0f ms",
                type(e).__name__,
                e,
                _elapsed_ms(started),
            )
            yield ErrorEvent(error=str(e) or "Unknown error occurred")
            return
        finally:
            if not generation.done():
                logger.info("Answer stream closed by client, cancelling generation")
                generation.cancel()
                await asyncio.wait({generation})

        logger.info("[LLM] Duration: %.0f ms, Model: %s", _elapsed_ms(generation_started), result.model_used)

        yield ModelUsedEvent(model=result.model_used)
        yield FollowupsEvent(followups=result.followups)
        state = self._transition(state, RelayState.DONE)
        yield DoneEvent()

        logger.info("[SUCCESS] Total duration: %.0f ms, Model: %s", _elapsed_ms(started), result.model_used)

    @staticmethod
    def _transition(current: RelayState, new: RelayState) -> RelayState:
        logger.debug("Relay state %s -> %s", current.value, new.value)
        return new
