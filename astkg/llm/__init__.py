"""
LLM access (OpenRouter chat completions).
"""

from astkg.llm.service import LLMConfig, OpenRouterService

__all__ = [
    "LLMConfig",
    "OpenRouterService",
]
