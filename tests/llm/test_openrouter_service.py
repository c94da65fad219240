"""
Test OpenRouterService
======================

Completion calls against a mocked aiohttp session.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from astkg.llm import LLMConfig, OpenRouterService


def _session(status=200, payload=None, text=""):
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=payload)
    response.text = AsyncMock(return_value=text)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.closed = False
    session.post = MagicMock(return_value=context)
    session.close = AsyncMock()
    return session


def _service(session, **config) -> OpenRouterService:
    values = dict(api_key="sk-test", model="test/model")
    values.update(config)
    service = OpenRouterService(LLMConfig(**values))
    service.session = session
    return service


COMPLETION = {
    "choices": [{"message": {"content": "CLASS: OrderService"}}],
    "usage": {"total_tokens": 42, "prompt_tokens": 40, "completion_tokens": 2},
}


class TestLLMConfig:
    """Test LLMConfig."""

    def test_env_defaults(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-env")
        monkeypatch.setenv("ASTKG_LLM_MODEL", "anthropic/claude")
        config = LLMConfig()
        assert config.api_key == "sk-env"
        assert config.model == "anthropic/claude"
        assert config.temperature == 0.1

    def test_empty_key_is_none(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "")
        assert LLMConfig().api_key is None

    @pytest.mark.parametrize("kwargs", [{"temperature": 3.0}, {"max_tokens": 0}])
    def test_validation(self, kwargs):
        with pytest.raises(ValueError):
            LLMConfig(**kwargs)


class TestGenerate:
    """Test generate."""

    @pytest.mark.asyncio
    async def test_returns_completion(self):
        session = _session(payload=COMPLETION)
        service = _service(session)

        text = await service.generate("Which classes handle orders?", system_prompt="Be terse")

        assert text == "CLASS: OrderService"
        assert service.get_last_usage() == {"total_tokens": 42, "prompt_tokens": 40, "completion_tokens": 2}

        url = session.post.call_args.args[0]
        assert url == "https://openrouter.ai/api/v1/chat/completions"
        payload = session.post.call_args.kwargs["json"]
        assert payload["model"] == "test/model"
        assert payload["messages"] == [
            {"role": "system", "content": "Be terse"},
            {"role": "user", "content": "Which classes handle orders?"},
        ]
        assert session.post.call_args.kwargs["headers"]["Authorization"] == "Bearer sk-test"

    @pytest.mark.asyncio
    async def test_no_system_prompt(self):
        session = _session(payload=COMPLETION)

        await _service(session).generate("hi")

        assert session.post.call_args.kwargs["json"]["messages"] == [{"role": "user", "content": "hi"}]

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        session = _session(payload=COMPLETION)
        service = _service(session, api_key=None)

        with pytest.raises(ValueError, match="API key"):
            await service.generate("hi")
        session.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_http_error(self):
        service = _service(_session(status=429, text="rate limited"))

        with pytest.raises(RuntimeError, match="429"):
            await service.generate("hi")

    @pytest.mark.asyncio
    async def test_missing_choices(self):
        service = _service(_session(payload={"choices": []}))

        with pytest.raises(RuntimeError, match="Invalid response"):
            await service.generate("hi")

    @pytest.mark.asyncio
    async def test_missing_content(self):
        service = _service(_session(payload={"choices": [{"message": {}}]}))

        with pytest.raises(RuntimeError, match="no message content"):
            await service.generate("hi")

    @pytest.mark.asyncio
    async def test_close(self):
        session = _session(payload=COMPLETION)
        service = _service(session)

        await service.close()

        session.close.assert_awaited_once()
