"""
Chat service - LLM answers with a local fallback.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from enrolment_pulse.exceptions import LLMUnavailableError
from enrolment_pulse.models.records import EnrolmentRecord
from enrolment_pulse.services.llm_client import GeminiClient
from enrolment_pulse.services.query_engine import QueryEngine
from enrolment_pulse.utils.aggregators import aggregate, group_by_day, percentage, top_states
from enrolment_pulse.utils.constants import AGE_GROUP_LABELS

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an assistant specialised in Aadhaar enrolment analytics for India. You help policy makers and analysts understand enrolment trends, patterns, and insights.

Current Data Context:
{context}

Guidelines:
- Provide data-driven insights when asked about enrolment statistics
- Support both Hindi and English queries
- Be concise but informative
- When showing numbers, format them properly (e.g., 10,18,629)
- Suggest relevant follow-up questions when appropriate
- If asked about something outside Aadhaar analytics, politely redirect to your expertise area"""


@dataclass
class ChatReply:
    response: str
    source: str  # "llm" or "local"
    model: Optional[str] = None
    fallback_reason: Optional[str] = None
    insight: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "response": self.response,
            "source": self.source,
            "model": self.model,
            "fallback": self.source == "local",
            "fallback_reason": self.fallback_reason,
            "insight": self.insight,
        }


def build_data_context(records: Sequence[EnrolmentRecord]) -> str:
    """Plain-text summary of the dataset for the system prompt."""
    metrics = aggregate(records)
    total = metrics.total_enrolments
    ages = metrics.by_age_group.to_dict()

    lines = [f"Total Enrolments: {total:,}", "Age Distribution:"]
    lines += [
        f"- {AGE_GROUP_LABELS[col]}: {ages[col]:,} ({percentage(ages[col], total)}%)"
        for col in AGE_GROUP_LABELS
    ]
    lines += ["", "Top 5 States by Enrolment:"]
    lines += [
        f"{i}. {s.state}: {s.total_enrolments:,}"
        for i, s in enumerate(top_states(records, 5), 1)
    ]
    lines += ["", "Recent Daily Trends (last 7 days of data):"]
    lines += [f"{p.date}: {p.count:,}" for p in group_by_day(records)[-7:]]
    return "\n".join(lines)


class ChatService:
    """Answers chat messages, preferring the LLM when one is configured."""

    def __init__(self, records: Sequence[EnrolmentRecord], client: Optional[GeminiClient] = None):
        self.records = records
        self.client = client or GeminiClient()
        self.query_engine = QueryEngine(records)

    def local_reply(self, message: str, reason: Optional[str] = None) -> ChatReply:
        insight = self.query_engine.process(message or "summary")
        return ChatReply(
            response=insight.answer,
            source="local",
            fallback_reason=reason,
            insight=insight.to_dict(),
        )

    def reply(self, message: str, history: Optional[List[Dict[str, str]]] = None) -> ChatReply:
        """
        Answer with Gemini when a key is configured; any failure falls back
        to the local query engine.
        """
        if not self.client.enabled:
            return self.local_reply(message, reason="Gemini API key not configured")

        system_prompt = SYSTEM_PROMPT.format(context=build_data_context(self.records))
        try:
            text = self.client.generate(system_prompt, message, history or [])
        except LLMUnavailableError as e:
            logger.warning(f"Falling back to local answers: {e.message}")
            return self.local_reply(message, reason=e.message)

        return ChatReply(response=text, source="llm", model=self.client.model)
