import logging
from typing import List, Optional

from fabot.core.config import Settings
from fabot.schemas import ChatResponse, WireMessage
from fabot.services.llm_service import CompletionGateway
from fabot.services.prompts import CHAT_FALLBACK_REPLY

logger = logging.getLogger(__name__)


class InvalidChatRequest(ValueError):
    """Rejected before any gateway call is made."""


def proxy_chat(
    messages: List[WireMessage],
    gateway: CompletionGateway,
    settings: Settings,
    model: Optional[str] = None,
) -> ChatResponse:
    """
    Forward the caller's transcript to the completion gateway and return the
    assistant reply. Gateway errors propagate as GatewayError subclasses.
    """
    if not messages:
        raise InvalidChatRequest("No messages provided")
    if model and not gateway.supports_model(model):
        raise InvalidChatRequest(f"Unsupported model: {model}")

    logger.info("Proxying %d messages", len(messages))
    completion = gateway.complete(
        [m.model_dump() for m in messages],
        model=model,
        temperature=settings.CHAT_TEMPERATURE,
        max_tokens=settings.CHAT_MAX_TOKENS,
    )

    reply = completion.content if (completion.content or "").strip() else CHAT_FALLBACK_REPLY
    return ChatResponse(message=reply, usage=completion.usage, model=completion.model)
