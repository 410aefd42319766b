"""
Minimal async client for the Anthropic Messages API.

Only what the risk scorer and fraud explainer need: send one prompt, get the
text back, and optionally validate a JSON object embedded in that text.
"""
import json
import logging
import os
from typing import Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from app.services.exceptions import LLMError

logger = logging.getLogger(__name__)

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
LLM_MODEL = os.getenv("LLM_MODEL", "claude-3-5-haiku-latest")
LLM_BASE_URL = os.getenv("LLM_BASE_URL", "https://api.anthropic.com")
LLM_TIMEOUT_SECONDS = float(os.getenv("RISK_SCORER_TIMEOUT_SECONDS", "10"))

T = TypeVar("T", bound=BaseModel)


class LLMClient:
    API_VERSION = "2023-06-01"

    def __init__(
        self,
        api_key: str,
        model: str = LLM_MODEL,
        base_url: str = LLM_BASE_URL,
        timeout: float = LLM_TIMEOUT_SECONDS,
        max_tokens: int = 512,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ValueError("Valid API key is required")
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self.max_tokens = max_tokens
        self._transport = transport

    async def messages(self, prompt: str) -> str:
        """Send a single user message and return the concatenated text blocks."""
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.API_VERSION,
            "content-type": "application/json",
        }
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport) as client:
                response = await client.post("/v1/messages", json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise LLMError(f"Request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise LLMError(f"Network error: {e}") from e

        if response.status_code >= 400:
            logger.warning("LLM request failed with status %d: %s", response.status_code, response.text[:200])
            raise LLMError(f"API request failed with status {response.status_code}", status_code=response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise LLMError(f"Failed to parse API response: {e}") from e

        content = body.get("content") if isinstance(body, dict) else None
        if not isinstance(content, list):
            raise LLMError("API response had no content list")
        text = "".join(
            block.get("text", "")
            for block in content
            if isinstance(block, dict) and block.get("type") == "text" and isinstance(block.get("text"), str)
        )
        if not text.strip():
            raise LLMError("API response contained no text")
        return text

    async def structured(self, prompt: str, model_cls: Type[T]) -> T:
        """Ask for a JSON answer and validate it against ``model_cls``."""
        text = await self.messages(prompt)
        answer = _first_json_object(text)
        if answer is None:
            raise LLMError("Completion did not contain a JSON object")
        try:
            return model_cls.model_validate(answer)
        except ValidationError as e:
            raise LLMError(f"Completion did not match {model_cls.__name__}: {e}") from e


def _first_json_object(text: str) -> Optional[dict]:
    """Decode the first complete JSON object in ``text``, ignoring whatever surrounds it."""
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except ValueError:
            value = None
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)
    return None
