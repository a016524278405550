import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from fabot.core.config import Settings, get_settings
from fabot.schemas import ConversationAnalysis
from fabot.services.analysis_service import AnalysisDegraded, AnalysisOk, AnalysisOutcome

logger = logging.getLogger(__name__)

DEFAULT_ERRORS = {
    400: "Invalid request",
    401: "Completion API key is invalid or not configured",
    402: "Billing problem with the completion provider",
    429: "Rate limit exceeded",
}
NETWORK_ERROR = "Sorry, an error occurred. Please try again."


class ApiError(Exception):
    def __init__(self, status: Optional[int], message: str):
        self.status = status
        self.message = message
        super().__init__(f"[{status}] {message}" if status else message)


@dataclass
class ChatReply:
    message: str
    model: Optional[str] = None
    usage: Optional[Dict[str, Any]] = None


class FabotApiClient:
    """Async client for the /chat and /analyze endpoints."""

    def __init__(self, http: httpx.AsyncClient):
        self.http = http

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "FabotApiClient":
        settings = settings or get_settings()
        return cls(httpx.AsyncClient(base_url=settings.API_BASE_URL, timeout=settings.CLIENT_TIMEOUT_SECONDS))

    async def aclose(self) -> None:
        await self.http.aclose()

    async def _post(self, path: str, payload: Dict[str, Any]) -> httpx.Response:
        try:
            response = await self.http.post(path, json=payload)
        except httpx.HTTPError as e:
            logger.error("Request to %s failed: %s", path, e)
            raise ApiError(None, NETWORK_ERROR) from e

        if response.is_success:
            return response

        try:
            error = response.json().get("error")
        except (ValueError, AttributeError):
            error = None
        message = error or DEFAULT_ERRORS.get(response.status_code, f"Request failed with status {response.status_code}")
        raise ApiError(response.status_code, message)

    async def send_chat(self, messages: List[Dict[str, str]], model: Optional[str] = None) -> ChatReply:
        payload: Dict[str, Any] = {"messages": messages}
        if model:
            payload["model"] = model
        response = await self._post("/chat", payload)
        try:
            data = response.json()
            return ChatReply(message=data["message"], model=data.get("model"), usage=data.get("usage"))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error("Malformed chat response (%s): %r", response.status_code, e)
            raise ApiError(response.status_code, NETWORK_ERROR) from e

    async def analyze(self, messages: List[Dict[str, str]], language: str = "en") -> AnalysisOutcome:
        response = await self._post("/analyze", {"messages": messages, "language": language})
        try:
            analysis = ConversationAnalysis.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ApiError(response.status_code, f"Malformed analysis response: {e}") from e

        if response.headers.get("X-Analysis-Status") == "degraded":
            return AnalysisDegraded(analysis, reason=response.headers.get("X-Analysis-Degraded-Reason", ""))
        return AnalysisOk(analysis)
