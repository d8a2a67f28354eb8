"""Incremental parsing of Gemini's streamed JSON array responses.

``streamGenerateContent`` (without ``alt=sse``) answers with one top-level
JSON array whose elements arrive progressively. Elements are parsed line by
line as the body is read, so tokens can be relayed before the array closes.
"""
import json
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

_STRUCTURAL_LINES = {"", "[", "]", ","}


def extract_text(payload: Dict[str, Any]) -> Optional[str]:
    """Return ``candidates[0].content.parts[0].text`` or None."""
    try:
        return payload["candidates"][0]["content"]["parts"][0].get("text")
    except (KeyError, IndexError, TypeError, AttributeError):
        return None


class StreamedArrayParser:
    """
    Line-buffered parser for a progressively delivered JSON array.

    Text is fed in arbitrary chunks. Complete lines are parsed as array
    elements; the trailing partial line stays buffered until more text or
    ``close()`` arrives. Lines that do not parse are skipped.
    """

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, text: str) -> List[Dict[str, Any]]:
        self._buffer += text
        *lines, self._buffer = self._buffer.split("\n")
        return self._parse_lines(lines)

    def close(self) -> List[Dict[str, Any]]:
        """Parse whatever is left once the stream has ended."""
        remainder, self._buffer = self._buffer, ""
        return self._parse_lines([remainder])

    def _parse_lines(self, lines: List[str]) -> List[Dict[str, Any]]:
        elements = []
        for line in lines:
            element = self._parse_line(line)
            if element is not None:
                elements.append(element)
        return elements

    @staticmethod
    def _parse_line(line: str) -> Optional[Dict[str, Any]]:
        candidate = line.strip()
        if candidate in _STRUCTURAL_LINES:
            return None

        # Array punctuation can share a line with an element: "[{...}," or ",{...}"
        if candidate.startswith(("[", ",")):
            candidate = candidate[1:].lstrip()
        if candidate.endswith(","):
            candidate = candidate[:-1].rstrip()
        elif candidate.endswith("}]"):
            candidate = candidate[:-1]

        try:
            element = json.loads(candidate)
        except json.JSONDecodeError:
            logger.debug("Skipping unparseable stream line: %.80s", candidate)
            return None
        return element if isinstance(element, dict) else None
