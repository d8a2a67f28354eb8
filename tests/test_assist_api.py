"""POST /api/rephrase and POST /api/transform."""
import json

from tests.helpers import gemini_generate_body

PRIMARY = "gemini-2.5-flash"


def test_rephrase_returns_rewritten_query(client, providers):
    providers.generate_responses[PRIMARY] = (200, gemini_generate_body("best pizza in naples 2024"))

    response = client.post("/api/rephrase", json={"query": "good pizza naples"})

    assert response.status_code == 200
    assert response.json() == {"rephrased": "best pizza in naples 2024"}
    prompt = json.loads(providers.requests[0].content)["contents"][0]["parts"][0]["text"]
    assert prompt.endswith("good pizza naples")


def test_rephrase_upstream_failure_returns_original_query(client, providers):
    providers.generate_responses[PRIMARY] = (503, b"unavailable")

    response = client.post("/api/rephrase", json={"query": "good pizza naples"})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to rephrase query", "rephrased": "good pizza naples"}


def test_rephrase_requires_query(client):
    response = client.post("/api/rephrase", json={})
    assert response.status_code == 400
    assert response.json()["error"] == "Query is required"


def test_transform_returns_model_output(client, providers):
    providers.generate_responses[PRIMARY] = (200, gemini_generate_body("Short version."))

    response = client.post(
        "/api/transform",
        json={"text": "A long answer.", "action": "shorten", "prompt": "Shorten: A long answer."},
    )

    assert response.status_code == 200
    assert response.json() == {"result": "Short version."}
    prompt = json.loads(providers.requests[0].content)["contents"][0]["parts"][0]["text"]
    assert prompt == "Shorten: A long answer."


def test_transform_empty_output_returns_original_text(client, providers):
    providers.generate_responses[PRIMARY] = (200, b'{"candidates": []}')

    response = client.post(
        "/api/transform", json={"text": "Keep me.", "action": "simplify", "prompt": "Simplify"}
    )
    assert response.json() == {"result": "Keep me."}


def test_transform_requires_all_fields(client):
    response = client.post("/api/transform", json={"text": "x", "action": "simplify"})
    assert response.status_code == 400
    assert response.json()["code"] == "MISSING_FIELDS"


def test_transform_upstream_failure_is_500(client, providers):
    providers.generate_responses[PRIMARY] = (500, b"boom")

    response = client.post("/api/transform", json={"text": "x", "action": "a", "prompt": "p"})
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to transform text"}
