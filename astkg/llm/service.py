"""
OpenRouter LLM Service
======================

Thin async client for the OpenRouter chat-completions API, shared by the
semantic enricher (method descriptions) and the entity analyzer (entity
selection).

The service returns the raw completion text; callers own prompt building
and response parsing.
"""

import os
import aiohttp
import structlog
from dataclasses import dataclass, field
from typing import Dict, Any, Optional

log = structlog.get_logger()


@dataclass
class LLMConfig:
    """
    Settings for the completion endpoint.

    Attributes:
        api_key: OpenRouter key (env OPENROUTER_API_KEY)
        model: OpenRouter model id (env ASTKG_LLM_MODEL)
        temperature: Sampling temperature
        max_tokens: Completion token cap
        timeout_seconds: Total HTTP timeout per request
    """
    api_key: Optional[str] = field(default_factory=lambda: os.getenv("OPENROUTER_API_KEY") or None)
    model: str = field(default_factory=lambda: os.getenv("ASTKG_LLM_MODEL", "google/gemini-2.5-flash"))
    temperature: float = 0.1
    max_tokens: int = 4000
    timeout_seconds: float = 30.0

    def __post_init__(self):
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError(f"temperature must be in [0, 2], got {self.temperature}")
        if self.max_tokens < 1:
            raise ValueError(f"max_tokens must be >= 1, got {self.max_tokens}")


class OpenRouterService:
    """
    Completion client over OpenRouter.

    Example:
        llm = OpenRouterService(LLMConfig(api_key="sk-..."))
        text = await llm.generate("List the classes handling refunds")
        await llm.close()
    """

    OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

    def __init__(self, config: Optional[LLMConfig] = None):
        self.config = config or LLMConfig()
        self.session: Optional[aiohttp.ClientSession] = None
        self._last_usage: Dict[str, int] = {}

    def get_last_usage(self) -> Dict[str, int]:
        """Token usage reported by the last successful call."""
        return self._last_usage.copy()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            )
        return self.session

    async def close(self):
        """Close the aiohttp session."""
        if self.session and not self.session.closed:
            await self.session.close()

    def _build_payload(self, prompt: str, system_prompt: Optional[str]) -> Dict[str, Any]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        return {
            "model": self.config.model,
            "messages": messages,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }

    async def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """
        Generate a completion.

        Args:
            prompt: User prompt content
            system_prompt: Optional system prompt

        Returns:
            Completion text

        Raises:
            ValueError: If no API key is configured
            RuntimeError: On non-200 responses or malformed payloads
        """
        if not self.config.api_key:
            raise ValueError("OpenRouter API key not provided")

        session = await self._get_session()

        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            "X-Title": "ASTKG",
        }

        log.info(f"Generating completion with model: {self.config.model}")

        async with session.post(
            f"{self.OPENROUTER_BASE_URL}/chat/completions",
            json=self._build_payload(prompt, system_prompt),
            headers=headers
        ) as response:

            if response.status != 200:
                error_text = await response.text()
                log.error(f"OpenRouter API error {response.status}: {error_text}")
                raise RuntimeError(f"OpenRouter API error: {response.status} - {error_text}")

            data = await response.json()

        if "choices" not in data or not data["choices"]:
            log.error(f"Invalid OpenRouter response: {data}")
            raise RuntimeError("Invalid response from OpenRouter API")

        completion = data["choices"][0].get("message", {}).get("content")
        if completion is None:
            raise RuntimeError("OpenRouter response carries no message content")

        usage = data.get("usage", {})
        self._last_usage = {
            "total_tokens": usage.get("total_tokens", 0),
            "prompt_tokens": usage.get("prompt_tokens", 0),
            "completion_tokens": usage.get("completion_tokens", 0),
        }

        log.info(
            f"Generated completion ({len(completion)} chars, "
            f"{self._last_usage['total_tokens']} tokens)"
        )
        return completion
