"""
Conversation analysis ("Visual Guide").

The whole transcript is sent to the completion gateway wrapped in a
summarisation prompt and the reply is parsed as a ConversationAnalysis.
A reply that is not usable JSON never becomes an error: the caller gets the
localized placeholder analysis, tagged as degraded.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import List, Union

from pydantic import ValidationError

from fabot.core.config import Settings
from fabot.schemas import ConversationAnalysis, WireMessage
from fabot.services.llm_service import CompletionGateway
from fabot.services.prompts import (
    ANALYSIS_SYSTEM_PROMPT,
    PLACEHOLDER_ANALYSIS,
    ROLE_LABELS,
    build_analysis_prompt,
)

logger = logging.getLogger(__name__)

FENCE_RE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)


@dataclass
class AnalysisOk:
    analysis: ConversationAnalysis
    degraded = False


@dataclass
class AnalysisDegraded:
    analysis: ConversationAnalysis
    reason: str
    degraded = True


AnalysisOutcome = Union[AnalysisOk, AnalysisDegraded]


def placeholder_analysis(language: str = "en") -> ConversationAnalysis:
    return ConversationAnalysis.model_validate(PLACEHOLDER_ANALYSIS[language])


def render_transcript(messages: List[WireMessage], language: str = "en") -> str:
    labels = ROLE_LABELS[language]
    return "\n\n".join(f"{labels[m.role]}: {m.content}" for m in messages)


def parse_analysis(raw: str) -> ConversationAnalysis:
    """
    Parse the model reply. Raises ValueError (json errors included) or
    ValidationError when the reply does not have the expected shape.
    """
    text = (raw or "").strip()
    fenced = FENCE_RE.match(text)
    if fenced:
        text = fenced.group(1)

    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return ConversationAnalysis.model_validate(data)


def analyze_conversation(
    messages: List[WireMessage],
    gateway: CompletionGateway,
    settings: Settings,
    language: str = "en",
) -> AnalysisOutcome:
    transcript = render_transcript(messages, language)
    completion = gateway.complete(
        [
            {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT[language]},
            {"role": "user", "content": build_analysis_prompt(transcript, language)},
        ],
        temperature=settings.ANALYSIS_TEMPERATURE,
        max_tokens=settings.ANALYSIS_MAX_TOKENS,
        json_mode=True,
    )

    try:
        return AnalysisOk(parse_analysis(completion.content or ""))
    except (ValueError, ValidationError) as e:
        logger.warning("Analysis reply could not be parsed, using placeholder: %s", e)
        reason = (str(e).splitlines() or [e.__class__.__name__])[0]
        return AnalysisDegraded(placeholder_analysis(language), reason=reason)
