"""Chat listener and lobby command of the Discord cog, with Discord mocked out."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from wordchain.cogs.wordchain import GameplayView, LobbyView, WordChain
from wordchain.constants import CUSTOM_ID_LEAVE
from wordchain.engine import WordChainEngine

CHANNEL = "1001"


def make_channel() -> MagicMock:
    channel = MagicMock()
    channel.id = CHANNEL
    channel.name = "general"
    channel.send = AsyncMock(return_value=MagicMock(id=42))
    channel.fetch_message = AsyncMock(return_value=MagicMock(delete=AsyncMock()))
    return channel


def make_user(user_id: str) -> MagicMock:
    user = MagicMock()
    user.id = user_id
    user.display_name = user_id.title()
    user.bot = False
    return user


def make_message(channel: MagicMock, author: MagicMock, content: str) -> MagicMock:
    message = MagicMock()
    message.channel = channel
    message.author = author
    message.content = content
    return message


@pytest.fixture
def cog(engine: WordChainEngine) -> WordChain:
    bot = MagicMock()
    bot.command_prefix = ".."
    return WordChain(bot, engine)


class TestOpenLobby:
    @pytest.mark.asyncio
    async def test_author_becomes_master(self, cog: WordChain, engine: WordChainEngine) -> None:
        channel = make_channel()

        error = await cog.open_lobby(channel, make_user("alice"))

        assert error is None
        game = engine.get_game(CHANNEL)
        assert game.lobby_master_id == "alice"
        assert game.difficulty == "Hard"
        assert [p.user_id for p in game.players] == ["alice"]
        assert game.message_id == 42
        assert isinstance(channel.send.call_args.kwargs["view"], LobbyView)

    @pytest.mark.asyncio
    async def test_lobby_buttons_are_persistent(self, cog: WordChain) -> None:
        view = LobbyView(cog)

        assert view.is_persistent()
        assert CUSTOM_ID_LEAVE in [item.custom_id for item in view.children]

    @pytest.mark.asyncio
    async def test_second_lobby_is_refused(self, cog: WordChain) -> None:
        channel = make_channel()
        await cog.open_lobby(channel, make_user("alice"))

        error = await cog.open_lobby(channel, make_user("bob"))

        assert "already" in error


class TestChatAnswers:
    @pytest.mark.asyncio
    async def test_correct_answer_moves_game_on(self, cog: WordChain, engine: WordChainEngine, oracle, started_game) -> None:
        game = await started_game("alice", "bob")
        oracle.add_word("kancil")
        channel = make_channel()

        await cog.on_message(make_message(channel, make_user("alice"), "kancil"))

        assert game.find_player("alice").points == 6
        assert engine.get_current_player(CHANNEL).user_id == "bob"
        assert isinstance(channel.send.call_args.kwargs["view"], GameplayView)
        assert engine.timers.pending(CHANNEL)
        engine.clear_turn_timer(CHANNEL)

    @pytest.mark.asyncio
    async def test_rejection_is_posted_briefly(self, cog: WordChain, engine: WordChainEngine, oracle, started_game) -> None:
        await started_game("alice", "bob")
        oracle.add_word("buku")
        channel = make_channel()

        await cog.on_message(make_message(channel, make_user("alice"), "buku"))

        kwargs = channel.send.call_args.kwargs
        assert kwargs["content"].startswith("❌")
        assert kwargs["delete_after"] == 5
        assert engine.get_current_player(CHANNEL).user_id == "alice"

    @pytest.mark.asyncio
    async def test_other_players_and_commands_are_ignored(self, cog: WordChain, oracle, started_game) -> None:
        await started_game("alice", "bob")
        channel = make_channel()

        await cog.on_message(make_message(channel, make_user("bob"), "kancil"))
        await cog.on_message(make_message(channel, make_user("alice"), "..wc"))
        await cog.on_message(make_message(channel, make_user("alice"), "/wordchain"))

        assert oracle.lookup_calls == []
        channel.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_bot_authors_are_ignored(self, cog: WordChain, oracle, started_game) -> None:
        await started_game("alice", "bob")
        author = make_user("alice")
        author.bot = True

        await cog.on_message(make_message(make_channel(), author, "kancil"))

        assert oracle.lookup_calls == []

    @pytest.mark.asyncio
    async def test_winning_answer_posts_final_standings(self, cog: WordChain, engine: WordChainEngine, oracle, started_game) -> None:
        await started_game("alice", "bob")
        oracle.add_word("kancil", points=150)
        channel = make_channel()

        await cog.on_message(make_message(channel, make_user("alice"), "kancil"))

        embed = channel.send.call_args.kwargs["embed"]
        assert "The winner is @Alice" in embed.description
        assert engine.get_game(CHANNEL) is None


class TestBotTurn:
    @pytest.mark.asyncio
    async def test_crash_counts_as_bot_concession(self, cog: WordChain, engine: WordChainEngine, oracle, started_game, monkeypatch: pytest.MonkeyPatch) -> None:
        await started_game("alice")
        oracle.add_word("kancil")
        await engine.submit_answer(CHANNEL, "alice", "kancil")
        monkeypatch.setattr(engine, "play_bot_turn", AsyncMock(side_effect=RuntimeError("boom")))
        channel = make_channel()

        await cog._run_bot_turn(channel, 0)

        assert engine.get_game(CHANNEL) is None
        embed = channel.send.call_args.kwargs["embed"]
        assert "The winner is @Alice" in embed.description
