"""
Shared pytest fixtures for FABOT tests.

Provides:
- A fake completion gateway (no network)
- A TestClient wired to the fake gateway through dependency overrides
- Session store fixtures backed by tmp_path
- A fake endpoint client for controller tests
"""

import asyncio
import json
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from fabot.client.api_client import ChatReply
from fabot.client.storage import LocalStorage, SessionRepository
from fabot.core.config import Settings, get_settings
from fabot.main import app
from fabot.schemas import ConversationAnalysis
from fabot.services.analysis_service import AnalysisOk
from fabot.services.llm_service import PROVIDER_MODELS, Completion, CompletionGateway, Provider, get_gateway

VALID_ANALYSIS = {
    "keyPoints": ["User greeted the assistant", "Assistant offered help", "Small talk"],
    "topics": [{"name": "Greetings", "importance": "low", "summary": "Opening of the chat"}],
    "actionItems": ["Ask a real question"],
    "questions": ["What can you do?"],
    "summary": "A short greeting exchange.",
    "nextSteps": "Ask something specific.",
}


def make_settings(**overrides) -> Settings:
    values = {"GROQ_API_KEY": "test-key", "OPENAI_API_KEY": "", "CHAT_MODEL": None}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeGateway(CompletionGateway):
    """Answers chat calls with chat_reply and JSON-mode calls with analysis_reply."""

    def __init__(self, chat_reply: Optional[str] = "Hi there", analysis_reply: Optional[str] = None, error=None):
        super().__init__(
            Provider(
                name="groq",
                api_key="test-key",
                base_url=None,
                default_model=PROVIDER_MODELS["groq"][0],
                available_models=PROVIDER_MODELS["groq"],
            )
        )
        self.chat_reply = chat_reply
        self.analysis_reply = json.dumps(VALID_ANALYSIS) if analysis_reply is None else analysis_reply
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def complete(self, messages, *, model=None, temperature, max_tokens, json_mode=False):
        self.calls.append(
            {
                "messages": messages,
                "model": model,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "json_mode": json_mode,
            }
        )
        if self.error is not None:
            raise self.error
        content = self.analysis_reply if json_mode else self.chat_reply
        return Completion(
            content=content,
            usage={"prompt_tokens": 5, "completion_tokens": 3, "total_tokens": 8},
            model=model or self.provider.default_model,
        )


class FakeApi:
    """Stands in for FabotApiClient in controller tests."""

    def __init__(self):
        self.replies: List[Any] = []
        self.analyses: List[Any] = []
        self.chat_calls: List[Dict[str, Any]] = []
        self.analyze_calls: List[Dict[str, Any]] = []
        self.send_gate: Optional[asyncio.Event] = None

    async def send_chat(self, messages, model=None):
        self.chat_calls.append({"messages": messages, "model": model})
        if self.send_gate is not None:
            await self.send_gate.wait()
        item = self.replies.pop(0) if self.replies else ChatReply(message="Hi there", model="llama-3.1-8b-instant")
        if isinstance(item, Exception):
            raise item
        return item

    async def analyze(self, messages, language="en"):
        self.analyze_calls.append({"messages": messages, "language": language})
        item = self.analyses.pop(0) if self.analyses else AnalysisOk(
            ConversationAnalysis(
                key_points=[f"{len(messages)} messages analyzed in {language}"],
                summary="Conversation summary",
                next_steps="Keep going",
            )
        )
        if isinstance(item, Exception):
            raise item
        return item


def status_error(cls, status, message="boom"):
    """Build an openai SDK status error the way the SDK raises it."""
    request = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")
    return cls(message, response=httpx.Response(status, request=request), body=None)


def raising_sdk(error):
    """Object shaped like the OpenAI client whose create() raises error."""

    def create(**kwargs):
        raise error

    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


def replying_sdk(content, usage=None):
    def create(**kwargs):
        create.kwargs = kwargs
        message = SimpleNamespace(content=content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)], usage=usage)

    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


@pytest.fixture
def sdk_error_client(settings):
    """TestClient whose real CompletionGateway sees the given SDK error."""
    clients = []

    def build(cls, status, message="boom"):
        error = status_error(cls, status, message)
        gateway = CompletionGateway(FakeGateway().provider, client=raising_sdk(error))
        app.dependency_overrides[get_gateway] = lambda: gateway
        app.dependency_overrides[get_settings] = lambda: settings
        test_client = TestClient(app)
        clients.append(test_client)
        return test_client

    yield build
    for test_client in clients:
        test_client.close()
    app.dependency_overrides.clear()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(gateway, settings):
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path / "local_storage.json")


@pytest.fixture
def repository(storage):
    return SessionRepository(storage)


@pytest.fixture
def fake_api():
    return FakeApi()
