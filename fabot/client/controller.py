"""
Conversation Controller.

Owns the chat collection for one client session and coordinates sending
messages, re-analysing conversations and persisting everything through the
injected SessionRepository. The active message list is never stored twice:
it is always looked up through current_chat_id.

Usage:
    controller = ConversationController.from_settings()
    await controller.submit("Hello")
    await controller.wait_for_analysis()
    await controller.aclose()
"""

import logging
from typing import Dict, Iterable, List, Optional, Protocol

from fabot.client.analysis_queue import (
    LANGUAGE_CHANGED,
    MESSAGE_APPENDED,
    AnalysisJob,
    AnalysisScheduler,
)
from fabot.client.api_client import ApiError, ChatReply, FabotApiClient
from fabot.client.models import Attachment, Chat, KeyPoint, Message, derive_key_points
from fabot.client.state import ControllerEvent, ControllerState, transition
from fabot.client.storage import SessionRepository, build_repository, most_recent_chat_id
from fabot.core.config import Settings
from fabot.schemas import ConversationAnalysis
from fabot.services.analysis_service import AnalysisOutcome

logger = logging.getLogger(__name__)

DEFAULT_CHAT_NAME = "Chat {n}"
TITLE_LENGTH = 30
SUPPORTED_LANGUAGES = ("en", "pt")


class ChatNotFound(KeyError):
    pass


class ChatApi(Protocol):
    async def send_chat(self, messages: List[Dict[str, str]], model: Optional[str] = None) -> ChatReply: ...

    async def analyze(self, messages: List[Dict[str, str]], language: str = "en") -> AnalysisOutcome: ...


def title_from(text: str) -> Optional[str]:
    """First line of a message, shortened to a chat title."""
    lines = text.strip().splitlines()
    if not lines:
        return None
    line = lines[0].strip()
    if len(line) > TITLE_LENGTH:
        return line[: TITLE_LENGTH - 3].rstrip() + "..."
    return line


class ConversationController:
    def __init__(self, repository: SessionRepository, api: ChatApi, owns_api: bool = False):
        self.repository = repository
        self.api = api
        self._owns_api = owns_api
        self._state = ControllerState.IDLE

        snapshot = repository.load()
        self._chats: Dict[str, Chat] = snapshot.chats
        self._current_chat_id: Optional[str] = snapshot.current_chat_id
        self._language = repository.load_language()
        self._scheduler = AnalysisScheduler(self._run_analysis)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ConversationController":
        """Build a controller that owns its HTTP client; aclose() closes it."""
        return cls(build_repository(settings), FabotApiClient.from_settings(settings), owns_api=True)

    # ---- Views ----

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def chats(self) -> List[Chat]:
        return list(self._chats.values())

    @property
    def current_chat_id(self) -> Optional[str]:
        return self._current_chat_id

    @property
    def current_chat(self) -> Optional[Chat]:
        if self._current_chat_id is None:
            return None
        return self._chats.get(self._current_chat_id)

    @property
    def messages(self) -> List[Message]:
        chat = self.current_chat
        return list(chat.messages) if chat else []

    @property
    def analysis(self) -> Optional[ConversationAnalysis]:
        chat = self.current_chat
        return chat.analysis if chat else None

    @property
    def key_points(self) -> List[KeyPoint]:
        chat = self.current_chat
        return list(chat.key_points) if chat else []

    @property
    def language(self) -> str:
        return self._language

    @property
    def scheduler(self) -> AnalysisScheduler:
        return self._scheduler

    # ---- Persistence ----

    def _commit(self) -> None:
        self.repository.save(self._chats, self._current_chat_id)

    def _get_chat(self, chat_id: str) -> Chat:
        try:
            return self._chats[chat_id]
        except KeyError:
            raise ChatNotFound(chat_id) from None

    # ---- Chat management ----

    def _next_default_name(self) -> str:
        names = {chat.name for chat in self._chats.values()}
        n = len(self._chats) + 1
        while DEFAULT_CHAT_NAME.format(n=n) in names:
            n += 1
        return DEFAULT_CHAT_NAME.format(n=n)

    def create_chat(self, name: Optional[str] = None, model: Optional[str] = None) -> Chat:
        if model is None and self.current_chat is not None:
            model = self.current_chat.model
        chat = Chat(name=name or self._next_default_name(), model=model)
        self._chats[chat.id] = chat
        self._current_chat_id = chat.id
        self._commit()
        logger.info("Created chat %s (%s)", chat.id, chat.name)
        return chat

    def switch_chat(self, chat_id: str) -> Chat:
        chat = self._get_chat(chat_id)
        self._current_chat_id = chat.id
        self._commit()
        return chat

    def rename_chat(self, chat_id: str, name: str) -> Chat:
        chat = self._get_chat(chat_id)
        name = (name or "").strip()
        if not name:
            raise ValueError("Chat name cannot be blank")
        chat.name = name
        chat.touch()
        self._commit()
        return chat

    def delete_chat(self, chat_id: str) -> None:
        self._get_chat(chat_id)
        del self._chats[chat_id]
        self._scheduler.discard(chat_id)
        if self._current_chat_id == chat_id:
            self._current_chat_id = most_recent_chat_id(self._chats)
        self._commit()
        logger.info("Deleted chat %s, current is now %s", chat_id, self._current_chat_id)

    def set_model(self, model: Optional[str]) -> None:
        chat = self.current_chat
        if chat is None:
            self.create_chat(model=model)
            return
        chat.model = model
        chat.touch()
        self._commit()

    async def set_language(self, language: str) -> None:
        if language not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported language: {language}")
        if language == self._language:
            return
        self._language = language
        self.repository.save_language(language)
        chat = self.current_chat
        if chat is not None and chat.messages:
            self._scheduler.enqueue(chat.id, LANGUAGE_CHANGED)

    # ---- Messages ----

    def _append(self, chat: Chat, message: Message) -> None:
        chat.messages.append(message)
        chat.touch()
        self._commit()
        self._scheduler.enqueue(chat.id, MESSAGE_APPENDED)

    async def submit(self, text: str, attachments: Iterable[Attachment] = ()) -> Optional[Message]:
        """
        Send one user message and append the reply.
        Returns the assistant message, or None when the submission was rejected.
        """
        content = (text or "").strip()
        attachments = list(attachments)
        if not content and not attachments:
            return None
        if self._state.is_sending:
            logger.debug("Submit ignored, a send is already in flight")
            return None

        chat = self.current_chat or self.create_chat(name=title_from(content))
        self._append(chat, Message(role="user", content=content, attachments=attachments))
        transcript = [m.to_wire() for m in chat.messages]

        self._state = transition(self._state, ControllerEvent.SEND_STARTED)
        try:
            reply = await self.api.send_chat(transcript, model=chat.model)
            assistant = Message(role="assistant", content=reply.message, model=reply.model)
        except ApiError as e:
            logger.warning("Send failed for chat %s: %s", chat.id, e)
            assistant = Message(role="assistant", content=e.message)
        finally:
            self._state = transition(self._state, ControllerEvent.SEND_FINISHED)

        if chat.id not in self._chats:
            logger.info("Chat %s was deleted while a reply was in flight, dropping it", chat.id)
            return assistant
        self._append(chat, assistant)
        return assistant

    # ---- Analysis ----

    async def _run_analysis(self, job: AnalysisJob) -> None:
        chat = self._chats.get(job.chat_id)
        if chat is None or not chat.messages:
            return

        transcript = list(chat.messages)
        self._state = transition(self._state, ControllerEvent.ANALYSIS_STARTED)
        try:
            outcome = await self.api.analyze([m.to_wire() for m in transcript], self._language)
        except ApiError as e:
            logger.warning("Analysis failed for chat %s, keeping previous analysis: %s", chat.id, e)
            return
        finally:
            self._state = transition(self._state, ControllerEvent.ANALYSIS_FINISHED)

        if job.chat_id not in self._chats:
            return
        if outcome.degraded:
            logger.info("Analysis for chat %s degraded: %s", chat.id, outcome.reason)
            if chat.analysis is not None:
                return

        chat.analysis = outcome.analysis
        chat.key_points = derive_key_points(outcome.analysis, transcript)
        chat.touch()
        self._commit()

    async def wait_for_analysis(self) -> None:
        await self._scheduler.wait_idle()

    async def aclose(self) -> None:
        await self._scheduler.aclose()
        if self._owns_api:
            await self.api.aclose()
