"""
Tests for CommandRegistry and Dispatcher.

Covers:
- registry rejects duplicate names
- unknown command -> "Unknown command."
- defer flag controls whether the handler's reply is an edit or a first response
- NotLinkedError / DataStoreError / GatewayError / crashes all end in one visible reply
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from dropsbot.discord.dispatcher import (
    DATASTORE_ERROR,
    GENERIC_ERROR,
    UNKNOWN_COMMAND,
    CommandRegistry,
    CommandSpec,
    Dispatcher,
)
from dropsbot.discord.interaction import Reply, ReplyState
from dropsbot.errors import DataStoreError, GatewayError, NotLinkedError

from .conftest import make_interaction, not_found


def _dispatcher(registry: CommandRegistry, settings) -> Dispatcher:
    return Dispatcher(registry, store=MagicMock(), settings=settings)


class TestRegistry:
    def test_duplicate_name_rejected(self):
        registry = CommandRegistry()
        handler = AsyncMock()
        registry.add(CommandSpec("drops", handler))

        with pytest.raises(ValueError):
            registry.add(CommandSpec("drops", handler))

    def test_lookup(self):
        registry = CommandRegistry()
        registry.add(CommandSpec("ping", AsyncMock(), defer=False))
        registry.add(CommandSpec("daily", AsyncMock()))

        spec = registry.get("ping")
        assert spec is not None
        assert spec.defer is False
        assert "ping" in registry
        assert registry.get("nope") is None
        assert list(registry.names()) == ["daily", "ping"]
        assert len(registry) == 2


class TestDispatch:
    @pytest.mark.asyncio
    async def test_unknown_command(self, settings):
        interaction = make_interaction()

        reply = await _dispatcher(CommandRegistry(), settings).dispatch("nope", interaction)

        assert reply.state is ReplyState.REPLIED
        interaction.response.send_message.assert_awaited_once_with(ephemeral=True, content=UNKNOWN_COMMAND)

    @pytest.mark.asyncio
    async def test_deferred_command_edits_with_result(self, settings):
        registry = CommandRegistry()
        seen = {}

        async def handler(ctx, args):
            seen["state"] = ctx.reply.state
            seen["args"] = args
            return Reply.text("ok")

        registry.add(CommandSpec("drops", handler))
        interaction = make_interaction()

        reply = await _dispatcher(registry, settings).dispatch("drops", interaction, {"query": "x"})

        assert seen == {"state": ReplyState.DEFERRED, "args": {"query": "x"}}
        assert reply.visible.content == "ok"
        interaction.response.defer.assert_awaited_once_with(ephemeral=False)
        interaction.edit_original_response.assert_awaited_once_with(content="ok", embeds=[])
        interaction.response.send_message.assert_not_called()

    @pytest.mark.asyncio
    async def test_direct_command_responds(self, settings):
        registry = CommandRegistry()
        registry.add(CommandSpec("link", AsyncMock(return_value=Reply.text("steps", ephemeral=True)), defer=False))
        interaction = make_interaction()

        await _dispatcher(registry, settings).dispatch("link", interaction)

        interaction.response.defer.assert_not_called()
        interaction.response.send_message.assert_awaited_once_with(ephemeral=True, content="steps")

    @pytest.mark.asyncio
    async def test_ephemeral_spec_defers_ephemeral(self, settings):
        registry = CommandRegistry()
        registry.add(CommandSpec("daily", AsyncMock(return_value=Reply.text("ok")), ephemeral=True))
        interaction = make_interaction()

        await _dispatcher(registry, settings).dispatch("daily", interaction)

        interaction.response.defer.assert_awaited_once_with(ephemeral=True)

    @pytest.mark.asyncio
    async def test_not_linked_gives_instructions(self, settings):
        registry = CommandRegistry()
        registry.add(CommandSpec("stats", AsyncMock(side_effect=NotLinkedError("111", "Tester"))))
        interaction = make_interaction()

        reply = await _dispatcher(registry, settings).dispatch("stats", interaction)

        assert reply.state is ReplyState.REPLIED
        assert "/link" in reply.visible.content
        interaction.edit_original_response.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_not_linked_other_user_names_them(self, settings):
        registry = CommandRegistry()
        registry.add(CommandSpec("vip", AsyncMock(side_effect=NotLinkedError("222", "Bob", is_self=False))))

        reply = await _dispatcher(registry, settings).dispatch("vip", make_interaction())

        assert reply.visible.content == "❌ Bob hasn't linked their Discord account yet."

    @pytest.mark.asyncio
    async def test_data_store_error_after_defer(self, settings):
        registry = CommandRegistry()
        registry.add(CommandSpec("drops", AsyncMock(side_effect=DataStoreError("latest_drops failed"))))
        interaction = make_interaction()

        reply = await _dispatcher(registry, settings).dispatch("drops", interaction)

        assert reply.visible.content == DATASTORE_ERROR
        interaction.response.send_message.assert_not_called()
        interaction.edit_original_response.assert_awaited_once_with(content=DATASTORE_ERROR, embeds=[])

    @pytest.mark.asyncio
    async def test_handler_crash_before_any_ack_responds(self, settings):
        registry = CommandRegistry()
        registry.add(CommandSpec("help", AsyncMock(side_effect=KeyError("boom")), defer=False))
        interaction = make_interaction()

        reply = await _dispatcher(registry, settings).dispatch("help", interaction)

        assert reply.state is ReplyState.REPLIED
        interaction.response.send_message.assert_awaited_once_with(ephemeral=True, content=GENERIC_ERROR)

    @pytest.mark.asyncio
    async def test_handler_that_acks_itself_then_crashes(self, settings):
        """A handler that already responded and then throws is reported via an edit."""
        registry = CommandRegistry()

        async def handler(ctx, args):
            await ctx.reply.respond("partial")
            raise GatewayError("double ack")

        registry.add(CommandSpec("top", handler, defer=False))
        interaction = make_interaction()

        reply = await _dispatcher(registry, settings).dispatch("top", interaction)

        assert reply.visible.content == GENERIC_ERROR
        interaction.response.send_message.assert_awaited_once()
        interaction.edit_original_response.assert_awaited_once_with(content=GENERIC_ERROR, embeds=[])

    @pytest.mark.asyncio
    async def test_expired_interaction_never_raises(self, settings):
        registry = CommandRegistry()
        handler = AsyncMock(return_value=Reply.text("ok"))
        registry.add(CommandSpec("drops", handler))
        interaction = make_interaction()
        interaction.response.defer = AsyncMock(side_effect=not_found())
        interaction.response.send_message = AsyncMock(side_effect=not_found())

        reply = await _dispatcher(registry, settings).dispatch("drops", interaction)

        handler.assert_not_called()
        assert reply.state is ReplyState.REPLIED
