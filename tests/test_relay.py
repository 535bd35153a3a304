"""Tests for relay.py — classification, recording and completion relay."""

import asyncio
import sqlite3

import pytest
from unittest.mock import AsyncMock, MagicMock

import events
from events import ChatEvent
from providers.base import BaseProvider, CompletionError
from relay import MessageRelay, extract_prompt, is_relayable
from store import MessageStore


def _event(
    body: str = "hello",
    type: str = events.TEXT,
    is_direct: bool = True,
    id: str = "1:1",
    from_me: bool = False,
) -> ChatEvent:
    return ChatEvent(
        id=id,
        body=body,
        type=type,
        timestamp=1700000000,
        sender="42",
        recipient="999",
        chat_id=42,
        sender_name="Ada",
        from_me=from_me,
        is_direct=is_direct,
    )


def _provider(reply: str = "Hi!") -> MagicMock:
    provider = MagicMock(spec=BaseProvider)
    provider.complete = AsyncMock(return_value=reply)
    return provider


@pytest.fixture
def store(tmp_path):
    s = MessageStore(db_path=str(tmp_path / "dump.db"))
    yield s
    s.close()


class TestExtractPrompt:
    def test_prefix_and_whitespace_stripped(self):
        assert extract_prompt("gpt: hello", "gpt:") == "hello"

    def test_trailing_whitespace_stripped(self):
        assert extract_prompt("gpt:   what is 2+2?  \n", "gpt:") == "what is 2+2?"

    def test_no_prefix(self):
        assert extract_prompt("hello", "gpt:") is None

    def test_prefix_is_case_sensitive(self):
        assert extract_prompt("GPT: hello", "gpt:") is None

    def test_prefix_must_be_at_start(self):
        assert extract_prompt("ask gpt: hello", "gpt:") is None

    def test_bare_prefix_gives_empty_prompt(self):
        assert extract_prompt("gpt:  ", "gpt:") == ""


class TestIsRelayable:
    def test_direct_text(self):
        assert is_relayable(_event())

    def test_non_text(self):
        assert not is_relayable(_event(type=events.IMAGE))

    def test_group_text(self):
        assert not is_relayable(_event(is_direct=False))


class TestMessageRelay:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kind", [events.IMAGE, events.VIDEO, events.STICKER, events.UNKNOWN]
    )
    async def test_non_text_event_is_ignored(self, store, kind):
        provider = _provider()
        reply = AsyncMock()
        relay = MessageRelay(store, provider)

        await relay.handle(_event(body="gpt: caption", type=kind), reply)

        assert store.count() == 0
        provider.complete.assert_not_awaited()
        reply.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_group_text_is_ignored(self, store):
        provider = _provider()
        relay = MessageRelay(store, provider)

        await relay.handle(_event(body="gpt: hi", is_direct=False), AsyncMock())

        assert store.count() == 0
        provider.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_text_event_is_stored_once(self, store):
        relay = MessageRelay(store, _provider())

        await relay.handle(_event(body="hello"), AsyncMock())

        rows = store.recent()
        assert len(rows) == 1
        assert rows[0].content == "hello"
        assert rows[0].sender == "42"
        assert rows[0].sender_name == "Ada"
        assert rows[0].timestamp == "1700000000"

    @pytest.mark.asyncio
    async def test_plain_text_makes_no_request(self, store):
        provider = _provider()
        reply = AsyncMock()
        relay = MessageRelay(store, provider)

        await relay.handle(_event(body="hello"), reply)

        provider.complete.assert_not_awaited()
        reply.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_prefixed_text_relays_prompt_and_replies(self, store):
        provider = _provider("Hello back")
        reply = AsyncMock()
        relay = MessageRelay(store, provider)

        await relay.handle(_event(body="gpt: hello"), reply)

        provider.complete.assert_awaited_once_with([{"role": "user", "content": "hello"}])
        reply.assert_awaited_once_with("Hello back")
        assert store.recent()[0].content == "gpt: hello"

    @pytest.mark.asyncio
    async def test_self_sent_message_is_handled_once(self, store):
        provider = _provider("noted")
        reply = AsyncMock()
        relay = MessageRelay(store, provider)

        await relay.submit(_event(body="gpt: hi", from_me=True), reply)
        await relay.drain()

        assert store.count() == 1
        assert store.recent()[0].content == "gpt: hi"
        provider.complete.assert_awaited_once_with([{"role": "user", "content": "hi"}])
        reply.assert_awaited_once_with("noted")
        assert relay.pending == 0

    @pytest.mark.asyncio
    async def test_custom_prefix(self, store):
        provider = _provider()
        relay = MessageRelay(store, provider, prefix="ai:")
        assert relay.prefix == "ai:"

        await relay.handle(_event(body="gpt: hello"), AsyncMock())
        provider.complete.assert_not_awaited()

        await relay.handle(_event(body="ai:hello"), AsyncMock())
        provider.complete.assert_awaited_once_with([{"role": "user", "content": "hello"}])

    @pytest.mark.asyncio
    async def test_empty_prompt_makes_no_request(self, store):
        provider = _provider()
        relay = MessageRelay(store, provider)

        await relay.handle(_event(body="gpt:   "), AsyncMock())

        assert store.count() == 1
        provider.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_store_failure_does_not_stop_completion(self):
        store = MagicMock(spec=MessageStore)
        store.record = AsyncMock(side_effect=sqlite3.OperationalError("disk I/O error"))
        provider = _provider("still here")
        reply = AsyncMock()
        relay = MessageRelay(store, provider)

        await relay.handle(_event(body="gpt: hello"), reply)

        provider.complete.assert_awaited_once()
        reply.assert_awaited_once_with("still here")

    @pytest.mark.asyncio
    async def test_api_failure_is_swallowed(self, store):
        provider = _provider()
        provider.complete.side_effect = CompletionError("quota exceeded", status=429)
        reply = AsyncMock()
        relay = MessageRelay(store, provider)

        await relay.handle(_event(body="gpt: hello"), reply)

        reply.assert_not_awaited()
        assert store.count() == 1

    @pytest.mark.asyncio
    async def test_unexpected_provider_error_is_swallowed(self, store):
        provider = _provider()
        provider.complete.side_effect = RuntimeError("boom")
        relay = MessageRelay(store, provider)

        await relay.handle(_event(body="gpt: hello"), AsyncMock())

    @pytest.mark.asyncio
    async def test_reply_failure_is_swallowed(self, store):
        reply = AsyncMock(side_effect=RuntimeError("chat gone"))
        relay = MessageRelay(store, _provider())

        await relay.handle(_event(body="gpt: hello"), reply)

        reply.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_empty_completion_sends_no_reply(self, store):
        reply = AsyncMock()
        relay = MessageRelay(store, _provider(""))

        await relay.handle(_event(body="gpt: hello"), reply)

        reply.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_api_failure_does_not_block_next_event(self, store):
        async def flaky(messages, system=None):
            if messages[0]["content"] == "one":
                raise CompletionError("down", status=503)
            return "recovered"

        provider = _provider()
        provider.complete.side_effect = flaky
        first_reply, second_reply = AsyncMock(), AsyncMock()
        relay = MessageRelay(store, provider)

        relay.submit(_event(body="gpt: one", id="1:1"), first_reply)
        relay.submit(_event(body="gpt: two", id="1:2"), second_reply)
        await relay.drain()

        first_reply.assert_not_awaited()
        second_reply.assert_awaited_once_with("recovered")
        assert store.count() == 2
        assert relay.pending == 0


class TestSubmit:
    @pytest.mark.asyncio
    async def test_slow_completion_does_not_hold_up_other_events(self, store):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_complete(messages, system=None):
            started.set()
            await release.wait()
            return "done"

        provider = _provider()
        provider.complete.side_effect = slow_complete
        slow_reply = AsyncMock()
        relay = MessageRelay(store, provider)

        slow = relay.submit(_event(body="gpt: think hard", id="1:1"), slow_reply)
        fast = relay.submit(_event(body="just a note", id="1:2"), AsyncMock())
        await fast
        await started.wait()

        assert not slow.done()
        assert store.count() == 2

        release.set()
        await relay.drain()
        slow_reply.assert_awaited_once_with("done")

    @pytest.mark.asyncio
    async def test_drain_with_nothing_pending(self, store):
        relay = MessageRelay(store, _provider())
        await relay.drain()
        assert relay.pending == 0
