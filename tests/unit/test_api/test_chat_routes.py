"""Tests for POST /chat and GET /models."""

from collections.abc import AsyncIterator
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from tutor_gateway.auth.context import CallerRole
from tutor_gateway.errors import AuthError, RateLimitError
from tutor_gateway.llm.streaming import DONE_FRAME, delta_frame


class TestChat:
    async def test_chat_success(
        self, client: AsyncClient, openai_provider: AsyncMock
    ) -> None:
        response = await client.post(
            "/chat",
            json={
                "prompt": "Say OK",
                "tool_name": "GPT-5 Mini",
                "conversation_history": [{"prompt": "hi", "response": "hello"}],
            },
        )
        assert response.status_code == 200
        body = response.json()
        assert body["response_text"] == "OK"
        assert body["success"] is True
        assert body["tool_name"] == "GPT-5 Mini"
        assert body["cost_usd"] == pytest.approx(10 * 0.25 / 1e6 + 2 * 2.0 / 1e6)
        messages = openai_provider.send.call_args.args[0]
        assert len(messages) == 4

    async def test_chat_failure_returns_user_message(
        self, client: AsyncClient, openai_provider: AsyncMock
    ) -> None:
        openai_provider.send.side_effect = AuthError("401 invalid key", status=401)
        response = await client.post(
            "/chat", json={"prompt": "Say OK", "tool_name": "GPT-5"}
        )
        assert response.status_code == 502
        detail = response.json()["detail"]
        assert "GPT-5" in detail
        assert "configuration issue" in detail
        assert "invalid key" not in detail

    async def test_chat_failure_recorded(
        self, client: AsyncClient, openai_provider: AsyncMock, chat_router
    ) -> None:
        openai_provider.send.side_effect = RateLimitError("429")
        response = await client.post("/chat", json={"prompt": "x"})
        assert response.status_code == 502
        assert len(chat_router.diagnostics.records) == 1

    async def test_chat_stream(
        self, client: AsyncClient, openai_provider: AsyncMock
    ) -> None:
        async def _frames() -> AsyncIterator[bytes]:
            yield delta_frame("O")
            yield delta_frame("K")
            yield DONE_FRAME

        openai_provider.open_stream = AsyncMock(return_value=_frames())
        response = await client.post(
            "/chat", json={"prompt": "Say OK", "tool_name": "GPT-5 Mini", "stream": True}
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["x-tool-name"] == "GPT-5 Mini"
        assert response.text.endswith("data: [DONE]\n\n")
        assert '"content": "O"' in response.text

    async def test_empty_prompt_rejected(self, client: AsyncClient) -> None:
        response = await client.post("/chat", json={"prompt": ""})
        assert response.status_code == 422

    @pytest.mark.parametrize("caller_role", [CallerRole.STUDENT])
    async def test_students_may_chat(self, client: AsyncClient) -> None:
        response = await client.post("/chat", json={"prompt": "hi"})
        assert response.status_code == 200


class TestModels:
    async def test_list_models(self, client: AsyncClient) -> None:
        response = await client.get("/models")
        assert response.status_code == 200
        models = response.json()
        assert {"id": "sonar-pro", "name": "Sonar Pro", "provider": "perplexity"} in models
        assert len(models) == 9
