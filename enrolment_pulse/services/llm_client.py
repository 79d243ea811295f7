"""
Gemini generateContent client over plain REST.

Optional: with no GEMINI_API_KEY configured every call raises
LLMUnavailableError and the chat service answers locally instead.
"""
import logging
from typing import Any, Dict, List, Optional

import requests

from enrolment_pulse.config import settings
from enrolment_pulse.exceptions import LLMUnavailableError

logger = logging.getLogger(__name__)

GENERATION_CONFIG = {
    "temperature": 0.7,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 1024,
}

SAFETY_SETTINGS = [
    {"category": category, "threshold": "BLOCK_MEDIUM_AND_ABOVE"}
    for category in (
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    )
]


class GeminiClient:
    """Thin wrapper around the generateContent endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None
    ):
        self.api_key = settings.GEMINI_API_KEY if api_key is None else api_key
        self.model = model or settings.GEMINI_MODEL
        self.api_base = (api_base or settings.GEMINI_API_BASE).rstrip("/")
        self.timeout = timeout or settings.GEMINI_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    @property
    def url(self) -> str:
        return f"{self.api_base}/models/{self.model}:generateContent"

    @staticmethod
    def build_contents(
        system_prompt: str,
        history: List[Dict[str, str]],
        message: str
    ) -> List[Dict[str, Any]]:
        """
        Conversation in Gemini's contents format.

        The system prompt goes first as a user turn acknowledged by the
        model; history roles "assistant" map to "model".
        """
        contents = [
            {"role": "user", "parts": [{"text": system_prompt}]},
            {"role": "model", "parts": [{"text": "Understood. I am ready to help with Aadhaar enrolment analytics."}]},
        ]
        for turn in history:
            role = "model" if turn.get("role") == "assistant" else "user"
            contents.append({"role": role, "parts": [{"text": turn.get("content", "")}]})
        contents.append({"role": "user", "parts": [{"text": message}]})
        return contents

    def generate(
        self,
        system_prompt: str,
        message: str,
        history: Optional[List[Dict[str, str]]] = None
    ) -> str:
        """
        Send one chat turn and return the model's text.

        Raises:
            LLMUnavailableError: no key, transport failure, error status or
                a response without text
        """
        if not self.enabled:
            raise LLMUnavailableError("Gemini API key not configured")

        payload = {
            "contents": self.build_contents(system_prompt, history or [], message),
            "generationConfig": GENERATION_CONFIG,
            "safetySettings": SAFETY_SETTINGS,
        }

        try:
            response = self.session.post(
                self.url,
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Gemini request failed: {e}")
            raise LLMUnavailableError("Gemini request failed", reason=str(e)) from e

        if response.status_code != 200:
            logger.error(f"Gemini API error: {response.status_code} - {response.text[:200]}")
            raise LLMUnavailableError("Gemini API error", status=response.status_code)

        try:
            data = response.json()
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMUnavailableError("Gemini returned no text", reason=str(e)) from e


def get_llm_client() -> GeminiClient:
    """
    Client configured from settings.
    Use with FastAPI's Depends().
    """
    return GeminiClient()
