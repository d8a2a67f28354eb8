"""Test doubles and helpers for the provider APIs and the event stream."""
import json
from typing import Dict, List

import httpx


def gemini_element(text: str) -> str:
    return json.dumps({"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]})


def gemini_stream_body(*texts: str) -> bytes:
    """Render text deltas the way streamGenerateContent delivers them."""
    elements = [gemini_element(text) for text in texts]
    return ("[" + "\n" + ",\n".join(elements) + "\n]").encode()


def gemini_generate_body(text: str) -> bytes:
    return gemini_element(text).encode()


def cse_items(count: int) -> List[Dict[str, str]]:
    return [
        {
            "title": f"Result {n}",
            "link": f"https://site{n}.example.com/page/{n}",
            "snippet": f"Snippet {n}",
        }
        for n in range(1, count + 1)
    ]


class FakeProviders:
    """
    Stand-in for Google CSE and Gemini behind httpx.MockTransport.

    Per-model responses are (status, body bytes); unknown models answer 404.
    """

    def __init__(self):
        self.search_items: List[Dict[str, str]] = cse_items(2)
        self.search_status = 200
        self.stream_responses: Dict[str, tuple] = {}
        self.generate_responses: Dict[str, tuple] = {}
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if "customsearch" in path:
            return httpx.Response(self.search_status, json={"items": self.search_items})

        model, _, method = path.rsplit("/", 1)[-1].partition(":")
        responses = self.stream_responses if method == "streamGenerateContent" else self.generate_responses
        status, body = responses.get(model, (404, b'{"error": {"message": "model not found"}}'))
        return httpx.Response(status, content=body)

    def models_called(self) -> List[str]:
        return [
            request.url.path.rsplit("/", 1)[-1].split(":")[0]
            for request in self.requests
            if "/models/" in request.url.path
        ]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


def read_events(response: httpx.Response) -> List[dict]:
    """Decode a text/event-stream body into its JSON payloads."""
    events = []
    for frame in response.text.split("\n\n"):
        frame = frame.strip()
        if frame.startswith("data: "):
            events.append(json.loads(frame[len("data: "):]))
    return events
