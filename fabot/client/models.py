"""
Client-side domain models: messages, attachments, chats and key points.
These are what the Session Store persists.
"""

import base64
import mimetypes
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Literal, Optional

from pydantic import ConfigDict, Field

from fabot.schemas import CamelModel, ConversationAnalysis

Role = Literal["user", "assistant"]
AttachmentKind = Literal["image", "document", "text"]
Relevance = Literal["high", "medium", "low"]

TEXT_MIMETYPES = {"application/json", "application/xml", "application/x-yaml", "application/javascript"}


class AttachmentTooLarge(ValueError):
    pass


def utc_now() -> datetime:
    # Millisecond precision so timestamps survive a JSON round trip unchanged
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def new_id() -> str:
    """Time-ordered id with a random suffix; safe under rapid double submits."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}"


def attachment_kind(name: str) -> AttachmentKind:
    mimetype, _ = mimetypes.guess_type(name)
    if not mimetype:
        return "document"
    if mimetype.startswith("image/"):
        return "image"
    if mimetype.startswith("text/") or mimetype in TEXT_MIMETYPES:
        return "text"
    return "document"


class Attachment(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    name: str
    kind: AttachmentKind
    payload: str  # base64
    size: int

    @classmethod
    def from_path(cls, path, max_bytes: int) -> "Attachment":
        path = Path(path)
        size = path.stat().st_size
        if size > max_bytes:
            raise AttachmentTooLarge(f"{path.name} is {size} bytes, limit is {max_bytes}")
        data = path.read_bytes()
        return cls(
            name=path.name,
            kind=attachment_kind(path.name),
            payload=base64.b64encode(data).decode("ascii"),
            size=size,
        )

    def render(self) -> str:
        """Inline form used when the message goes over the wire."""
        if self.kind == "text":
            text = base64.b64decode(self.payload).decode("utf-8", errors="replace")
            return f"[File: {self.name}]\n```\n{text}\n```"
        return f"[Attached {self.kind}: {self.name} ({self.size} bytes)]"


class Message(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    role: Role
    content: str
    timestamp: datetime = Field(default_factory=utc_now)
    attachments: List[Attachment] = Field(default_factory=list)
    model: Optional[str] = None

    def to_wire(self) -> Dict[str, str]:
        parts = [self.content] if self.content else []
        parts.extend(a.render() for a in self.attachments)
        return {"role": self.role, "content": "\n\n".join(parts)}


class KeyPoint(CamelModel):
    text: str
    message_id: Optional[str] = None
    relevance: Relevance = "medium"


class Chat(CamelModel):
    id: str = Field(default_factory=new_id)
    name: str
    messages: List[Message] = Field(default_factory=list)
    analysis: Optional[ConversationAnalysis] = None
    key_points: List[KeyPoint] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    model: Optional[str] = None

    def touch(self) -> None:
        self.updated_at = utc_now()


def derive_key_points(analysis: ConversationAnalysis, messages: List[Message]) -> List[KeyPoint]:
    """
    Link each key point to the transcript message at the same position.
    The first two points are high relevance, the next two medium, the rest low.
    """
    key_points = []
    for index, text in enumerate(analysis.key_points):
        if index < 2:
            relevance = "high"
        elif index < 4:
            relevance = "medium"
        else:
            relevance = "low"
        message_id = messages[index].id if index < len(messages) else None
        key_points.append(KeyPoint(text=text, message_id=message_id, relevance=relevance))
    return key_points
