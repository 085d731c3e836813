"""ClaudeSession tests."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from claude_code_bridge import (
    ClaudeClient,
    ClientClosedError,
    Config,
    InputRejectedError,
    Prompt,
    StreamResponse,
)
from claude_code_bridge.testing import MockClaudeClient, RulesBasedMockProvider, StaticMockProvider


@pytest.fixture
def provider() -> RulesBasedMockProvider:
    return RulesBasedMockProvider("fallback").when_contains("ping", "pong")


@pytest.fixture
def mock_client(provider: RulesBasedMockProvider) -> MockClaudeClient:
    return MockClaudeClient(provider)


class TestSessionState:
    def test_unique_ids(self, mock_client: MockClaudeClient):
        first = mock_client.create_session()
        second = mock_client.create_session()
        assert first.session_id != second.session_id

    def test_system_prompt_setters(self, mock_client: MockClaudeClient):
        session = mock_client.create_session("one")
        session.system_prompt = "two"
        assert session.system_prompt == "two"
        session.set_system_prompt(None)
        assert session.system_prompt is None


class TestSend:
    """History and system prompt handling."""

    @pytest.mark.asyncio
    async def test_history_in_send_order(self, mock_client: MockClaudeClient):
        session = mock_client.create_session()
        await session.send("ping")
        await session.send("anything")

        assert [r.content for r in session.history] == ["pong", "fallback"]

    @pytest.mark.asyncio
    async def test_history_is_a_copy(self, mock_client: MockClaudeClient):
        session = mock_client.create_session()
        await session.send("ping")

        snapshot = session.history
        snapshot.clear()
        assert len(session.history) == 1

    @pytest.mark.asyncio
    async def test_session_system_prompt_applied(self, mock_client: MockClaudeClient, provider):
        session = mock_client.create_session("Answer in French.")
        await session.send("ping")

        sent = provider.recorded_requests[-1].prompt
        assert sent.text == "ping"
        assert sent.system_prompt == "Answer in French."

    @pytest.mark.asyncio
    async def test_prompt_system_prompt_wins(self, mock_client: MockClaudeClient, provider):
        session = mock_client.create_session("session default")
        await session.send(Prompt("ping", system_prompt="explicit"))
        assert provider.recorded_requests[-1].prompt.system_prompt == "explicit"

    @pytest.mark.asyncio
    async def test_changed_system_prompt_used_for_next_send(self, mock_client: MockClaudeClient, provider):
        session = mock_client.create_session("first")
        await session.send("a")
        session.set_system_prompt("second")
        await session.send("b")
        assert [r.prompt.system_prompt for r in provider.recorded_requests] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_send_async(self, mock_client: MockClaudeClient):
        session = mock_client.create_session()
        task = session.send_async("ping")
        assert isinstance(task, asyncio.Task)
        assert (await task).content == "pong"
        assert len(session.history) == 1

    def test_send_sync(self, mock_client: MockClaudeClient):
        session = mock_client.create_session()
        assert session.send_sync("ping").content == "pong"
        assert len(session.history) == 1

    @pytest.mark.asyncio
    async def test_blank_message_rejected(self, mock_client: MockClaudeClient, provider):
        session = mock_client.create_session("be brief")
        with pytest.raises(InputRejectedError) as exc_info:
            await session.send("   ")
        assert exc_info.value.field == "text"
        assert provider.recorded_requests == []
        assert session.history == []

    @pytest.mark.asyncio
    async def test_clear_history(self, mock_client: MockClaudeClient):
        session = mock_client.create_session()
        await session.send("ping")
        session.clear_history()
        assert session.history == []
        await session.send("ping")
        assert len(session.history) == 1


class TestClose:
    @pytest.mark.asyncio
    async def test_closed_session_rejects_sends(self, mock_client: MockClaudeClient):
        session = mock_client.create_session()
        await session.send("ping")
        session.close()

        assert session.closed
        assert session.history == []
        with pytest.raises(ClientClosedError):
            await session.send("ping")
        with pytest.raises(ClientClosedError):
            session.send_sync("ping")
        with pytest.raises(ClientClosedError):
            session.send_async("ping")

    @pytest.mark.asyncio
    async def test_close_leaves_client_open(self, mock_client: MockClaudeClient):
        session = mock_client.create_session()
        session.close()
        assert (await mock_client.execute("ping")).content == "pong"

    @pytest.mark.asyncio
    async def test_in_flight_send_not_recorded_after_close(self):
        client = MockClaudeClient(StaticMockProvider("slow"), delay=0.2)
        session = client.create_session()

        task = session.send_async("ping")
        await asyncio.sleep(0.05)
        session.close()

        assert (await task).content == "slow"
        assert session.history == []


class TestSessionWithRealClient:
    """A session over the real client and the fake CLI."""

    @pytest.mark.asyncio
    async def test_two_turns(self, fake_claude: Path):
        async with ClaudeClient(Config(grace_period=0.5), binary_path=fake_claude) as client:
            session = client.create_session("be brief")
            await session.send("first")
            await session.send("second")

        assert all(isinstance(r, StreamResponse) for r in session.history)
        assert [r.content for r in session.history] == ["first", "second"]
