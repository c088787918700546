"""Suggestion service - proposes new entries from a user's existing ones using OpenAI"""

from __future__ import annotations

import json
import os
from typing import List, Optional

from openai import APIConnectionError, APITimeoutError, OpenAI, RateLimitError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..utils.exceptions import SuggestionUnavailableError
from ..utils.logger import get_logger
from .formatting import EntryKind

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0
MAX_CORPUS_LENGTH = 8000

SYSTEM_PROMPT = """You are an assistant helping a user expand their life management system.
Suggest new entries of the requested type that the user might find useful or interesting.
Be creative and diverse. Answer with a JSON object: {"suggestions": ["...", "..."]}."""


class SuggestionService:
    """Generates candidate entries for the todo, plan and story kinds."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        timeout: float = DEFAULT_TIMEOUT,
        count: int = 3,
    ):
        self._api_key = (api_key or os.getenv("OPENAI_API_KEY") or "").strip()
        self._model = model
        self._timeout = max(1.0, float(timeout))
        self.count = count
        self._client = OpenAI(api_key=self._api_key) if self._api_key else None
        logger.info("Suggestion service initialized", has_api_key=bool(self._api_key), model=model)

    def is_available(self) -> bool:
        return self._client is not None

    @staticmethod
    def _sanitize(text: str) -> str:
        if not text or not isinstance(text, str):
            return ""
        cleaned = "".join(ch for ch in text if ord(ch) >= 32 or ch in "\n\r\t")
        if len(cleaned) > MAX_CORPUS_LENGTH:
            cleaned = cleaned[:MAX_CORPUS_LENGTH] + "..."
        return cleaned.strip()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((APIConnectionError, APITimeoutError, RateLimitError)),
        reraise=True,
    )
    def _complete(self, prompt: str) -> str:
        response = self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            response_format={"type": "json_object"},
            temperature=0.9,
            timeout=self._timeout,
        )
        choice = response.choices[0] if response.choices else None
        return (getattr(choice.message, "content", None) or "") if choice else ""

    def suggest(self, kind: EntryKind, existing_entries: str) -> List[str]:
        """Return up to ``count`` suggestions of the given kind."""
        if not self.is_available():
            raise SuggestionUnavailableError("AI suggestions are not configured.")
        kind = EntryKind(kind)
        prompt = (
            f'The user has provided their existing entries of type "{kind.value}".\n'
            f"Based on these entries, suggest {self.count} new entries of the same type.\n\n"
            f"Existing Entries:\n{self._sanitize(existing_entries)}"
        )
        try:
            content = self._complete(prompt)
        except Exception as e:
            logger.warning("Suggestion request failed", kind=kind.value, error=str(e), error_type=type(e).__name__)
            raise SuggestionUnavailableError("Could not fetch suggestions.") from e

        suggestions = parse_suggestions(content)[: self.count]
        logger.info("Suggestions generated", kind=kind.value, count=len(suggestions))
        return suggestions


def parse_suggestions(content: str) -> List[str]:
    """Read ``{"suggestions": [...]}``; fall back to one suggestion per line."""
    content = (content or "").strip()
    if not content:
        return []
    try:
        payload = json.loads(content)
    except ValueError:
        payload = None
    if isinstance(payload, dict) and isinstance(payload.get("suggestions"), list):
        return [s.strip() for s in payload["suggestions"] if isinstance(s, str) and s.strip()]
    lines = (line.strip().lstrip("-*0123456789.) ").strip() for line in content.splitlines())
    return [line for line in lines if line]
