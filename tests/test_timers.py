"""Turn timers: expiry, exclusivity and stale events."""
from __future__ import annotations

import asyncio

import pytest

from wordchain.engine import WordChainEngine
from wordchain.results import EndReason, Reason
from wordchain.timers import TurnExpired

CHANNEL = "1001"
SHORT = 0.05


class TestTurnTimer:
    @pytest.mark.asyncio
    async def test_requires_game_in_progress(self, engine: WordChainEngine, lobby) -> None:
        lobby("alice")
        result = engine.start_turn_timer(CHANNEL)
        assert result.reason == Reason.NOT_PLAYING
        assert not engine.timers.pending(CHANNEL)

    @pytest.mark.asyncio
    async def test_timeout_passes_turn(self, engine: WordChainEngine, started_game) -> None:
        game = await started_game("alice", "bob", "carol", time_limit_seconds=SHORT)
        results = []

        assert engine.start_turn_timer(CHANNEL, results.append).success
        assert engine.timers.pending(CHANNEL)
        await asyncio.sleep(SHORT * 4)

        assert len(results) == 1
        result = results[0]
        assert result.timeout
        assert result.timed_out_player.user_id == "alice"
        assert result.next_player.user_id == "bob"
        assert not result.game_ended
        assert game.current_player().user_id == "bob"
        assert not engine.timers.pending(CHANNEL)

    @pytest.mark.asyncio
    async def test_timeout_can_end_game(self, engine: WordChainEngine, started_game) -> None:
        await started_game("alice", "bob", time_limit_seconds=SHORT)
        results = []

        async def on_expire(result):
            results.append(result)

        engine.start_turn_timer(CHANNEL, on_expire)
        await asyncio.sleep(SHORT * 4)

        assert results[0].game_ended
        assert results[0].winner.user_id == "bob"
        assert results[0].end_reason == EndReason.LAST_PLAYER_STANDING
        assert engine.get_game(CHANNEL) is None

    @pytest.mark.asyncio
    async def test_everyone_timing_out(self, engine: WordChainEngine, started_game) -> None:
        await started_game("alice", bot_opponent_enabled=False, time_limit_seconds=SHORT)
        results = []

        engine.start_turn_timer(CHANNEL, results.append)
        await asyncio.sleep(SHORT * 4)

        assert results[0].winner is None
        assert results[0].end_reason == EndReason.ALL_TIMED_OUT

    @pytest.mark.asyncio
    async def test_restart_replaces_previous_timer(self, engine: WordChainEngine, started_game) -> None:
        await started_game("alice", "bob", "carol", time_limit_seconds=SHORT)
        results = []

        engine.start_turn_timer(CHANNEL, results.append)
        first = engine.get_game(CHANNEL).turn_timer
        engine.start_turn_timer(CHANNEL, results.append)
        await asyncio.sleep(SHORT * 4)

        assert first.done()
        assert len(results) == 1

    @pytest.mark.asyncio
    async def test_answer_cancels_timer(self, engine: WordChainEngine, oracle, started_game) -> None:
        game = await started_game("alice", "bob", time_limit_seconds=SHORT)
        oracle.add_word("kancil")
        results = []

        engine.start_turn_timer(CHANNEL, results.append)
        await engine.submit_answer(CHANNEL, "alice", "kancil")
        await asyncio.sleep(SHORT * 4)

        assert results == []
        assert game.current_player().user_id == "bob"
        assert not engine.timers.pending(CHANNEL)

    @pytest.mark.asyncio
    async def test_clear_is_idempotent(self, engine: WordChainEngine, started_game) -> None:
        await started_game("alice", "bob", time_limit_seconds=SHORT)
        results = []

        engine.start_turn_timer(CHANNEL, results.append)
        assert engine.clear_turn_timer(CHANNEL).success
        assert engine.clear_turn_timer(CHANNEL).success
        assert engine.clear_turn_timer("elsewhere").success
        await asyncio.sleep(SHORT * 4)

        assert results == []

    @pytest.mark.asyncio
    async def test_callback_may_start_next_timer(self, engine: WordChainEngine, started_game) -> None:
        await started_game("alice", "bob", "carol", time_limit_seconds=SHORT)
        results = []

        def on_expire(result):
            results.append(result)
            if not result.game_ended:
                engine.start_turn_timer(CHANNEL, on_expire)

        engine.start_turn_timer(CHANNEL, on_expire)
        await asyncio.sleep(SHORT * 8)

        assert [r.timed_out_player.user_id for r in results] == ["alice", "bob"]
        assert results[-1].game_ended
        assert results[-1].winner.user_id == "carol"

    @pytest.mark.asyncio
    async def test_callback_errors_are_contained(self, engine: WordChainEngine, started_game) -> None:
        await started_game("alice", "bob", "carol", time_limit_seconds=SHORT)

        def on_expire(result):
            raise RuntimeError("boom")

        engine.start_turn_timer(CHANNEL, on_expire)
        task = engine.get_game(CHANNEL).turn_timer
        await task

        assert engine.get_current_player(CHANNEL).user_id == "bob"

    @pytest.mark.asyncio
    async def test_remaining(self, engine: WordChainEngine, started_game) -> None:
        await started_game("alice", "bob", time_limit_seconds=10)

        assert engine.timers.remaining(CHANNEL) is None
        engine.start_turn_timer(CHANNEL)
        assert 9 < engine.timers.remaining(CHANNEL) <= 10
        engine.clear_turn_timer(CHANNEL)


class TestStaleEvents:
    @pytest.mark.asyncio
    async def test_old_generation_is_ignored(self, engine: WordChainEngine, oracle, started_game) -> None:
        game = await started_game("alice", "bob")
        stale = TurnExpired(channel_id=CHANNEL, generation=game.turn_generation)
        oracle.add_word("kancil")
        await engine.submit_answer(CHANNEL, "alice", "kancil")

        assert engine.timers.resolve_expired(stale) is None
        assert game.current_player().user_id == "bob"

    @pytest.mark.asyncio
    async def test_event_for_ended_game_is_ignored(self, engine: WordChainEngine, started_game) -> None:
        game = await started_game("alice", "bob")
        event = TurnExpired(channel_id=CHANNEL, generation=game.turn_generation)
        engine.exit(CHANNEL)

        assert engine.timers.resolve_expired(event) is None


class TestShutdown:
    @pytest.mark.asyncio
    async def test_cancels_timers_and_closes_oracle(self, engine: WordChainEngine, oracle, started_game) -> None:
        await started_game("alice", "bob", time_limit_seconds=10)
        engine.start_turn_timer(CHANNEL)
        task = engine.get_game(CHANNEL).turn_timer

        await engine.shutdown()
        await asyncio.sleep(0)

        assert task.cancelled() or task.done()
        assert oracle.closed
