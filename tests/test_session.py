from __future__ import annotations

import pytest

from wordchain.exceptions import ValidationError
from wordchain.results import Reason
from wordchain.session import GameSession, GameStatus, GameStore, Player, PlayerStatus, validate_settings


class TestGameStore:
    def test_create_uses_defaults(self) -> None:
        store = GameStore()
        result = store.create("c1", lobby_master_id="alice")

        assert result.success
        game = result.game
        assert game.status == GameStatus.LOBBY
        assert game.difficulty == "Medium"
        assert game.time_limit_seconds == 30
        assert game.max_rolls_per_player == 1
        assert game.bot_opponent_enabled is True
        assert game.language == "ID"
        assert game.lobby_master_id == "alice"
        assert store.get("c1") is game

    def test_second_create_keeps_original(self) -> None:
        store = GameStore()
        original = store.create("c1", difficulty="Easy").game

        result = store.create("c1", difficulty="Hard")

        assert not result.success
        assert result.reason == Reason.GAME_EXISTS
        assert result.game is original
        assert store.get("c1").difficulty == "Easy"
        assert len(store) == 1

    def test_explicit_none_means_unlimited_rolls(self) -> None:
        store = GameStore()
        game = store.create("c1", max_rolls_per_player=None).game
        assert game.max_rolls_per_player is None

    def test_unknown_option_is_rejected(self) -> None:
        result = GameStore().create("c1", colour="red")
        assert result.reason == Reason.INVALID_SETTING

    def test_invalid_setting_is_rejected(self) -> None:
        store = GameStore()
        result = store.create("c1", time_limit_seconds=0)
        assert result.reason == Reason.INVALID_SETTING
        assert "c1" not in store

    def test_remove(self) -> None:
        store = GameStore()
        game = store.create("c1").game

        assert store.remove("c1") is game
        assert store.remove("c1") is None
        assert store.get("c1") is None

    def test_stores_are_independent(self) -> None:
        first, second = GameStore(), GameStore()
        first.create("c1")
        assert "c1" not in second
        assert second.create("c1").success

    def test_channels_are_independent(self) -> None:
        store = GameStore()
        store.create("c1")
        store.create("c2")
        assert len(store.all_sessions()) == 2


class TestGameSession:
    def _session(self) -> GameSession:
        game = GameSession(channel_id="c1")
        game.players = [Player("a", "A"), Player("b", "B"), Player("c", "C")]
        return game

    def test_no_current_player_outside_play(self) -> None:
        game = self._session()
        assert game.current_player() is None
        assert not game.is_player_turn("a")

    def test_turn_index_wraps_over_active_players(self) -> None:
        game = self._session()
        game.status = GameStatus.PLAYING
        game.players[1].status = PlayerStatus.GAVE_UP
        game.turn_index = 3

        assert game.current_player().user_id == "c"

    def test_is_used_checks_any_form(self) -> None:
        game = self._session()
        game.used_answers.add("main")
        assert game.is_used(("bermain", "main"))
        assert not game.is_used(("makan",))


class TestValidateSettings:
    def test_difficulty_is_canonicalised(self) -> None:
        assert validate_settings({"difficulty": "hard"}) == {"difficulty": "Hard"}

    @pytest.mark.parametrize(
        "changes",
        [
            {"difficulty": "Impossible"},
            {"time_limit_seconds": -5},
            {"time_limit_seconds": True},
            {"max_rolls_per_player": -1},
            {"max_rolls_per_player": 1.5},
            {"bot_opponent_enabled": "yes"},
            {"players": []},
        ],
    )
    def test_rejects_bad_values(self, changes: dict) -> None:
        with pytest.raises(ValidationError):
            validate_settings(changes)
