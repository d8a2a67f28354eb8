"""Pydantic models for the answer stream.

StreamEvent is a tagged union on ``type``; each event is written to the
client as one ``data: <json>`` server-sent event.
"""
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SearchResult(BaseModel):
    """Normalized web search hit."""

    title: str
    url: str
    description: str
    favicon: Optional[str] = None
    index: int = Field(..., ge=1, description="1-based rank in provider order")


class PersonalizationSettings(BaseModel):
    """Per-request answer preferences.

    Values are not checked against the known options; unknown values fall
    back to the default instruction when the prompt is built.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    tone: Optional[str] = None  # neutral | friendly | formal
    answer_length: Optional[str] = None  # concise | normal | detailed
    language: Optional[str] = None  # english


class AnswerRequest(BaseModel):
    """Body of POST /api/answer."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    query: str
    answer_style: str = "concise"
    personalization: Optional[PersonalizationSettings] = None


class SourcesEvent(BaseModel):
    type: Literal["sources"] = "sources"
    sources: list[SearchResult]


class TokenEvent(BaseModel):
    type: Literal["token"] = "token"
    content: str


class ModelUsedEvent(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    type: Literal["modelUsed"] = "modelUsed"
    model: str


class FollowupsEvent(BaseModel):
    type: Literal["followups"] = "followups"
    followups: list[str]


class DoneEvent(BaseModel):
    type: Literal["done"] = "done"


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    error: str


StreamEvent = Union[SourcesEvent, TokenEvent, ModelUsedEvent, FollowupsEvent, DoneEvent, ErrorEvent]


def encode_sse(event: StreamEvent) -> str:
    """Format an event as a server-sent event frame."""
    return f"data: {event.model_dump_json(exclude_none=True)}\n\n"
