"""Fact extraction through an Ollama generation endpoint."""

import json
import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

FALLBACK_CHARS = 500

SYSTEM_PROMPT = (
    "You are a memory extraction assistant. Extract discrete, reusable facts "
    "and preferences from conversations. Return only a JSON array of strings."
)

USER_PROMPT_TEMPLATE = """Extract discrete, reusable facts and preferences from this conversation. Return a JSON array of strings, each a short factual statement. Focus on facts about the user, their preferences, skills, and context. Return [] if nothing memorable.

Conversation:
{conversation}"""


def fallback_facts(conversation: str) -> list[str]:
    """The raw conversation, truncated, as the single fact."""
    return [conversation[:FALLBACK_CHARS]]


def parse_facts(raw: str, conversation: str) -> list[str]:
    """Turn a model response into a list of facts.

    Accepts a bare JSON array, or an object with exactly one array-valued
    field (models in JSON mode often wrap the list as ``{"facts": [...]}``).
    Anything else falls back to the raw conversation.
    """
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Model output is not valid JSON, falling back to raw message")
        return fallback_facts(conversation)

    if isinstance(parsed, list):
        return _strings(parsed)

    if isinstance(parsed, dict):
        arrays = [v for v in parsed.values() if isinstance(v, list)]
        if len(arrays) == 1:
            return _strings(arrays[0])

    logger.warning("Unexpected JSON shape, falling back to raw message")
    return fallback_facts(conversation)


def _strings(items: list[Any]) -> list[str]:
    return [f for f in items if isinstance(f, str) and f.strip()]


class FactExtractor:
    """Summarize conversation text into atomic memory statements.

    Design decisions:
    - Strict JSON output requested via Ollama's ``format: "json"``
    - Never raises: any failure stores the raw text instead, so an
      unreachable model still leaves something usable for recall
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "qwen2.5:3b",
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.http = http_client or httpx.AsyncClient(timeout=timeout)

    async def extract(self, conversation: str) -> list[str]:
        """Extract facts from conversation text.

        Args:
            conversation: Free-form conversation transcript

        Returns:
            Extracted facts, possibly empty, or the fallback single fact
        """
        try:
            raw = await self._generate(conversation)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "LLM unreachable, storing raw message as fallback (%s)", exc
            )
            return fallback_facts(conversation)
        return parse_facts(raw, conversation)

    async def _generate(self, conversation: str) -> str:
        resp = await self.http.post(
            f"{self.base_url}/api/generate",
            json={
                "model": self.model,
                "system": SYSTEM_PROMPT,
                "prompt": USER_PROMPT_TEMPLATE.format(conversation=conversation),
                "format": "json",
                "stream": False,
            },
        )
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict) or not isinstance(data.get("response"), str):
            raise ValueError("Generate response decode failed: missing 'response'")
        return data["response"]

    async def close(self) -> None:
        await self.http.aclose()
