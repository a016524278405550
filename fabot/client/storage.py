"""
Session Store.

LocalStorage is a small file-backed string key/value store, the local
equivalent of browser local storage. SessionRepository keeps the whole chat
collection and the current chat pointer under fixed keys and rewrites them
in full on every save.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from pydantic import TypeAdapter, ValidationError

from fabot.client.models import Chat
from fabot.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

CHATS_KEY = "fabot-chats"
CURRENT_CHAT_KEY = "fabot-current-chat-id"
LANGUAGE_KEY = "fabot-language"

_chat_list = TypeAdapter(list[Chat])


class LocalStorage:
    def __init__(self, path):
        self.path = Path(path).expanduser()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Local storage at %s is unreadable, starting empty: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Local storage at %s is not a key/value object, starting empty", self.path)
            return {}
        return data

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".storage-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def get_item(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        self.set_items({key: value})

    def set_items(self, items: Dict[str, Optional[str]]) -> None:
        """Write several keys in one file replacement; None removes a key."""
        data = self._read()
        for key, value in items.items():
            if value is None:
                data.pop(key, None)
            else:
                data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        self.set_items({key: None})

    def clear(self) -> None:
        self._write({})


@dataclass
class SessionSnapshot:
    chats: Dict[str, Chat] = field(default_factory=dict)
    current_chat_id: Optional[str] = None


def most_recent_chat_id(chats: Dict[str, Chat]) -> Optional[str]:
    if not chats:
        return None
    return max(chats.values(), key=lambda chat: chat.updated_at).id


class SessionRepository:
    def __init__(self, storage: LocalStorage):
        self.storage = storage

    def load(self) -> SessionSnapshot:
        raw = self.storage.get_item(CHATS_KEY)
        if not raw:
            return SessionSnapshot()

        try:
            chats = _chat_list.validate_json(raw)
        except ValidationError as e:
            logger.warning("Stored chats could not be restored, starting empty: %s", e)
            return SessionSnapshot()

        by_id = {chat.id: chat for chat in chats}
        current_id = self.storage.get_item(CURRENT_CHAT_KEY)
        if current_id not in by_id:
            current_id = most_recent_chat_id(by_id)
        logger.info("Loaded %d chats from %s", len(by_id), self.storage.path)
        return SessionSnapshot(chats=by_id, current_chat_id=current_id)

    def save(self, chats: Dict[str, Chat], current_chat_id: Optional[str]) -> None:
        payload = _chat_list.dump_json(list(chats.values()), by_alias=True).decode("utf-8")
        self.storage.set_items({CHATS_KEY: payload, CURRENT_CHAT_KEY: current_chat_id})

    def load_language(self, default: str = "en") -> str:
        language = self.storage.get_item(LANGUAGE_KEY)
        return language if language in ("en", "pt") else default

    def save_language(self, language: str) -> None:
        self.storage.set_item(LANGUAGE_KEY, language)


def build_repository(settings: Optional[Settings] = None) -> SessionRepository:
    settings = settings or get_settings()
    return SessionRepository(LocalStorage(settings.SESSION_STORE_PATH))
