"""Prompt templates for answer generation, rephrasing and follow-ups."""
from typing import List, Optional, Sequence

from answer_engine.schemas.answer import PersonalizationSettings, SearchResult

TONE_INSTRUCTIONS = {
    "friendly": "Use a warm, conversational, and approachable tone. Be helpful and engaging.",
    "formal": "Use professional, precise language. Maintain a formal and academic tone.",
    "neutral": (
        "Use a balanced, neutral tone. Be clear and informative without being overly casual or formal."
    ),
}

LENGTH_INSTRUCTIONS = {
    "concise": (
        "Provide a clear, concise answer. Focus on the most important information. "
        "Keep your response brief but comprehensive."
    ),
    "detailed": (
        "Provide a detailed, comprehensive answer. Include relevant context, examples, and nuances. "
        "Be thorough and explanatory."
    ),
    "normal": (
        "Provide a balanced answer with moderate detail. Include key information and some context "
        "without being overly brief or exhaustive."
    ),
}

# English is the only supported answer language
LANGUAGE_INSTRUCTIONS = {"english": "Respond in English."}
DEFAULT_LANGUAGE_INSTRUCTION = LANGUAGE_INSTRUCTIONS["english"]

ANSWER_PROMPT = """You are a helpful AI assistant that provides accurate, comprehensive answers based on search results.

Tone: {tone}
{language}

User Query: {query}

Search Results:
{context}

Instructions:
1. {length}
2. Use inline citations like [1], [2], etc. when referencing specific sources
3. Use markdown formatting for better readability
4. If the search results don't fully answer the query, acknowledge the limitations
5. Structure your answer with clear headings and bullet points where appropriate

Answer:"""

REPHRASE_PROMPT = (
    "Rephrase the following search query to be more specific and optimized for web search. "
    "Return only the rephrased query without any explanation or quotes:\n\n{query}"
)

FOLLOWUP_TEMPLATES = (
    "What are the latest developments related to {query}?",
    "Can you explain more details about {query}?",
    "What are the alternatives or related topics to {query}?",
)


def build_context(sources: Sequence[SearchResult]) -> str:
    return "\n\n".join(
        f"[{source.index}] {source.title}\n{source.description}\nURL: {source.url}"
        for source in sources
    )


def tone_instruction(tone: Optional[str]) -> str:
    return TONE_INSTRUCTIONS.get(tone or "neutral", TONE_INSTRUCTIONS["neutral"])


def length_instruction(answer_length: Optional[str]) -> str:
    """Map concise/normal/detailed to its instruction; anything else is normal."""
    return LENGTH_INSTRUCTIONS.get(answer_length or "normal", LENGTH_INSTRUCTIONS["normal"])


def build_answer_prompt(
    query: str,
    sources: Sequence[SearchResult],
    answer_style: str = "concise",
    personalization: Optional[PersonalizationSettings] = None,
) -> str:
    """
    Compose the grounded answer prompt.

    The personalization answer length wins over the request's answer style.
    """
    personalization = personalization or PersonalizationSettings()
    effective_length = personalization.answer_length or answer_style

    return ANSWER_PROMPT.format(
        tone=tone_instruction(personalization.tone),
        language=LANGUAGE_INSTRUCTIONS.get(personalization.language or "", DEFAULT_LANGUAGE_INSTRUCTION),
        query=query,
        context=build_context(sources),
        length=length_instruction(effective_length),
    )


def build_rephrase_prompt(query: str) -> str:
    return REPHRASE_PROMPT.format(query=query)


def followup_questions(query: str) -> List[str]:
    # Template-filled, not model generated
    return [template.format(query=query) for template in FOLLOWUP_TEMPLATES]
