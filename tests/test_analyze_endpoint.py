import json

import openai

from conftest import VALID_ANALYSIS

TRANSCRIPT = {
    "messages": [
        {"role": "user", "content": "Hello"},
        {"role": "assistant", "content": "Hi there"},
    ]
}

ANALYSIS_KEYS = {"keyPoints", "topics", "actionItems", "questions", "summary", "nextSteps"}


def test_analysis_parsed_from_gateway_json(client, gateway):
    response = client.post("/analyze", json=TRANSCRIPT)

    assert response.status_code == 200
    assert response.headers["X-Analysis-Status"] == "ok"
    data = response.json()
    assert set(data) == ANALYSIS_KEYS
    assert data["keyPoints"] == VALID_ANALYSIS["keyPoints"]
    assert data["topics"][0] == {"name": "Greetings", "importance": "low", "summary": "Opening of the chat"}

    call = gateway.calls[0]
    assert call["json_mode"] is True
    assert call["temperature"] == 0.3
    assert call["max_tokens"] == 1500
    assert call["messages"][0]["role"] == "system"
    prompt = call["messages"][1]["content"]
    assert "User: Hello" in prompt
    assert "Assistant: Hi there" in prompt


def test_portuguese_prompt_uses_portuguese_labels(client, gateway):
    response = client.post("/analyze", json={**TRANSCRIPT, "language": "pt"})

    assert response.status_code == 200
    prompt = gateway.calls[0]["messages"][1]["content"]
    assert "Usuário: Hello" in prompt
    assert "IA: Hi there" in prompt


def test_malformed_json_degrades_to_placeholder(client, gateway):
    gateway.analysis_reply = "this is not json {"

    response = client.post("/analyze", json=TRANSCRIPT)

    assert response.status_code == 200
    assert response.headers["X-Analysis-Status"] == "degraded"
    assert response.headers["X-Analysis-Degraded-Reason"]
    data = response.json()
    assert set(data) == ANALYSIS_KEYS
    assert data["keyPoints"] == ["Conversation in progress..."]
    assert data["summary"]


def test_placeholder_is_localized(client, gateway):
    gateway.analysis_reply = "[]"

    data = client.post("/analyze", json={**TRANSCRIPT, "language": "pt"}).json()
    assert data["keyPoints"] == ["Conversa em andamento..."]
    assert data["summary"] == "Análise da conversa em progresso"


def test_wrong_shape_degrades(client, gateway):
    gateway.analysis_reply = json.dumps({"keyPoints": "not a list"})

    response = client.post("/analyze", json=TRANSCRIPT)
    assert response.status_code == 200
    assert response.headers["X-Analysis-Status"] == "degraded"


def test_fenced_json_is_accepted(client, gateway):
    gateway.analysis_reply = "```json\n" + json.dumps(VALID_ANALYSIS) + "\n```"

    response = client.post("/analyze", json=TRANSCRIPT)
    assert response.headers["X-Analysis-Status"] == "ok"
    assert response.json()["summary"] == VALID_ANALYSIS["summary"]


def test_partial_reply_fills_defaults(client, gateway):
    gateway.analysis_reply = json.dumps(
        {"keyPoints": ["Only point"], "topics": [{"name": "X", "importance": "urgent"}], "nextSteps": ["a", "b"]}
    )

    data = client.post("/analyze", json=TRANSCRIPT).json()
    assert data["keyPoints"] == ["Only point"]
    assert data["topics"][0]["importance"] == "medium"
    assert data["actionItems"] == []
    assert data["nextSteps"] == "a b"


def test_repeated_analysis_has_same_shape(client, gateway):
    first = client.post("/analyze", json=TRANSCRIPT).json()
    second = client.post("/analyze", json=TRANSCRIPT).json()

    assert set(first) == set(second) == ANALYSIS_KEYS
    for key in ANALYSIS_KEYS:
        assert type(first[key]) is type(second[key])


def test_gateway_failure_is_500(sdk_error_client):
    client = sdk_error_client(openai.RateLimitError, 429)

    response = client.post("/analyze", json=TRANSCRIPT)
    assert response.status_code == 500
    assert response.json()["error"] == "Failed to analyze conversation"


def test_invalid_body_is_500(client, gateway):
    response = client.post("/analyze", content=b"{not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 500
    assert "error" in response.json()
    assert gateway.calls == []
