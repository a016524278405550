from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional, Dict, Any, Literal

Language = Literal["en", "pt"]
Importance = Literal["high", "medium", "low"]


class CamelModel(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WireMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ChatRequest(BaseModel):
    messages: List[WireMessage]
    model: Optional[str] = None


class ChatResponse(BaseModel):
    message: str
    usage: Optional[Dict[str, Any]] = None
    model: str


class AnalyzeRequest(BaseModel):
    messages: List[WireMessage]
    language: Language = "en"


class Topic(CamelModel):
    name: str
    importance: Importance = "medium"
    summary: str = ""

    @field_validator("importance", mode="before")
    @classmethod
    def _normalize_importance(cls, value):
        value = str(value or "").strip().lower()
        return value if value in ("high", "medium", "low") else "medium"


class ConversationAnalysis(CamelModel):
    key_points: List[str] = Field(default_factory=list)
    topics: List[Topic] = Field(default_factory=list)
    action_items: List[str] = Field(default_factory=list)
    questions: List[str] = Field(default_factory=list)
    summary: str = ""
    next_steps: str = ""

    @field_validator("summary", "next_steps", mode="before")
    @classmethod
    def _flatten_text(cls, value):
        if value is None:
            return ""
        if isinstance(value, list):
            return " ".join(str(item) for item in value)
        return value


class ErrorResponse(BaseModel):
    error: str
