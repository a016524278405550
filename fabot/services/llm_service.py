import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

from openai import OpenAI, OpenAIError

from fabot.core.config import Settings, get_settings
from fabot.core.errors import GatewayAuthError, GatewayError, classify_gateway_error

logger = logging.getLogger(__name__)

GROQ_BASE_URL = "https://api.groq.com/openai/v1"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

# Models offered by the model selector, default first
PROVIDER_MODELS: Dict[str, Tuple[str, ...]] = {
    "groq": (
        "llama-3.1-8b-instant",
        "llama-3.3-70b-versatile",
        "gemma2-9b-it",
        "mixtral-8x7b-32768",
    ),
    "openai": ("gpt-4o-mini", "gpt-4o", "gpt-3.5-turbo"),
    "openrouter": (
        "openai/gpt-4o-mini",
        "openai/gpt-4o",
        "meta-llama/llama-3.1-8b-instruct",
    ),
}


@dataclass(frozen=True)
class Provider:
    name: str
    api_key: str
    base_url: Optional[str]
    default_model: str
    available_models: Tuple[str, ...]


@dataclass
class Completion:
    content: Optional[str]
    usage: Optional[Dict[str, Any]]
    model: str


def resolve_provider(settings: Settings) -> Provider:
    """
    Pick the completion account from the configured credentials.
    GROQ_API_KEY drives the groq provider; OPENAI_API_KEY drives OpenAI,
    or OpenRouter when the key is an OpenRouter key.
    """
    if settings.COMPLETION_PROVIDER == "groq":
        name, api_key, base_url = "groq", settings.GROQ_API_KEY, GROQ_BASE_URL
    elif settings.OPENAI_API_KEY.startswith("sk-or-v1"):
        name, api_key, base_url = "openrouter", settings.OPENAI_API_KEY, OPENROUTER_BASE_URL
    else:
        name, api_key, base_url = "openai", settings.OPENAI_API_KEY, None

    models = PROVIDER_MODELS[name]
    default_model = settings.CHAT_MODEL or models[0]
    if default_model not in models:
        models = (default_model,) + models

    return Provider(
        name=name,
        api_key=api_key,
        base_url=base_url,
        default_model=default_model,
        available_models=models,
    )


class CompletionGateway:
    """
    Thin wrapper over the OpenAI-compatible chat completion API.
    The SDK client is built on first use so a missing key only fails the request.
    """

    def __init__(self, provider: Provider, client: Optional[OpenAI] = None):
        self.provider = provider
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not self.provider.api_key:
                logger.error("No API key configured for provider %s", self.provider.name)
                raise GatewayAuthError("Completion API key is invalid or not configured")
            self._client = OpenAI(api_key=self.provider.api_key, base_url=self.provider.base_url)
        return self._client

    def supports_model(self, model: str) -> bool:
        return model in self.provider.available_models

    def complete(
        self,
        messages: List[Dict[str, str]],
        *,
        model: Optional[str] = None,
        temperature: float,
        max_tokens: int,
        json_mode: bool = False,
    ) -> Completion:
        model_name = model or self.provider.default_model
        logger.debug(
            "Calling %s (%s) with %d messages, key present: %s",
            self.provider.name, model_name, len(messages), bool(self.provider.api_key),
        )

        extra: Dict[str, Any] = {}
        if json_mode:
            extra["response_format"] = {"type": "json_object"}

        try:
            response = self.client.chat.completions.create(
                model=model_name,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                **extra,
            )
        except GatewayError:
            raise
        except OpenAIError as exc:
            raise classify_gateway_error(exc) from exc

        content = response.choices[0].message.content if response.choices else None
        usage = response.usage.model_dump() if response.usage else None
        logger.info("Completion received from %s, usage: %s", model_name, usage)
        return Completion(content=content, usage=usage, model=model_name)


@lru_cache(maxsize=4)
def build_gateway(provider: Provider) -> CompletionGateway:
    return CompletionGateway(provider)


def get_gateway() -> CompletionGateway:
    return build_gateway(resolve_provider(get_settings()))
