"""Tests for automated move selection."""

import random
from collections import Counter
from dataclasses import replace

import pytest

from lineup.game import CONNECT_FOUR, GOMOKU, GameState, GameVariant, PlacementDiscipline, Player
from lineup.policy import (
    NO_MOVE_AVAILABLE,
    DecisionPolicy,
    NoMoveAvailable,
    Personality,
    center_first,
    center_weighted_random,
)
from lineup.safety import MoveSafetyAnalyzer, SafetyRisk

ALL_PERSONALITIES = list(Personality)


def connect_four(*bottom_rows):
    rows = ["......."] * (CONNECT_FOUR.rows - len(bottom_rows)) + list(bottom_rows)
    return GameState.from_diagram(rows, CONNECT_FOUR)


def self_play(policy):
    state = GameState.new(CONNECT_FOUR)
    moves = []
    while not state.is_game_over:
        move = policy.select_move(state)
        if move is NO_MOVE_AVAILABLE:
            break
        moves.append(move)
        state = state.apply_move(move).state
    return moves, state


class AlwaysDangerous(MoveSafetyAnalyzer):
    def analyze_all(self, state, player=None):
        return [replace(r, risk=SafetyRisk.HIGH) for r in super().analyze_all(state, player)]


class TestLadder:
    @pytest.mark.parametrize("personality", ALL_PERSONALITIES)
    def test_blocks_immediate_threat(self, personality):
        state = connect_four("XXX....")
        assert DecisionPolicy(personality, seed=1).select_move(state) == 3

    @pytest.mark.parametrize("personality", ALL_PERSONALITIES)
    def test_prefers_win_over_block(self, personality):
        state = connect_four("......O", "......O", "XXX...O")
        decision = DecisionPolicy(personality, seed=1).decide(state)
        assert decision.position == 3
        assert decision.reason == "win"

    def test_first_win_in_scan_order(self):
        state = connect_four(".OOO...", ".XXX...")
        assert DecisionPolicy(Personality.CENTER_FIRST).select_move(state) == 0

    @pytest.mark.parametrize("personality", ALL_PERSONALITIES)
    def test_avoids_move_that_hands_over_a_win(self, personality):
        state = connect_four("OOO....", "XXO.X.X")
        policy = DecisionPolicy(personality, seed=3)
        for _ in range(20):
            decision = policy.decide(state)
            assert decision.position != 3
            assert decision.reason == "safe"

    def test_center_first_skips_dangerous_center(self):
        state = connect_four("OOO....", "XXO.X.X")
        assert DecisionPolicy(Personality.CENTER_FIRST).select_move(state) == 2

    def test_fallback_when_every_move_is_dangerous(self):
        policy = DecisionPolicy(Personality.CENTER_FIRST, safety=AlwaysDangerous())
        decision = policy.decide(GameState.new(CONNECT_FOUR))
        assert decision.position == 3
        assert decision.reason == "fallback"

    def test_no_move_available_on_finished_game(self):
        state = GameState.from_diagram(["XO", "OX"], GameVariant("tiny", 2, 2, 3, PlacementDiscipline.FREE))
        assert state.is_game_over
        move = DecisionPolicy().select_move(state)
        assert move is NO_MOVE_AVAILABLE
        assert not move
        assert NoMoveAvailable() is NO_MOVE_AVAILABLE


class TestPersonalities:
    def test_center_first_on_empty_board(self):
        assert DecisionPolicy(Personality.CENTER_FIRST).select_move(GameState.new(CONNECT_FOUR)) == 3

    def test_positional_on_empty_board(self):
        assert DecisionPolicy(Personality.POSITIONAL).select_move(GameState.new(CONNECT_FOUR)) == 3

    @pytest.mark.parametrize("personality", [Personality.CENTER_FIRST, Personality.POSITIONAL])
    def test_opens_in_the_middle_of_a_free_board(self, personality):
        assert DecisionPolicy(personality).select_move(GameState.new(GOMOKU)) == (7, 7)

    def test_personality_override_per_call(self):
        policy = DecisionPolicy(Personality.UNIFORM_RANDOM, seed=5)
        decision = policy.decide(GameState.new(CONNECT_FOUR), "center-first")
        assert decision.position == 3
        assert decision.personality is Personality.CENTER_FIRST

    def test_unknown_personality(self):
        with pytest.raises(ValueError):
            DecisionPolicy("aggressive")

    def test_center_first_ties_go_to_scan_order(self):
        reports = MoveSafetyAnalyzer().analyze_all(GameState.new(CONNECT_FOUR))
        candidates = [r for r in reports if r.position in (2, 4)]
        assert center_first(candidates, random.Random(0)).position == 2

    def test_center_weighted_favours_center(self):
        reports = MoveSafetyAnalyzer().analyze_all(GameState.new(CONNECT_FOUR))
        rng = random.Random(7)
        counts = Counter(center_weighted_random(reports, rng).position for _ in range(2000))
        assert set(counts) <= set(range(7))
        assert counts[3] > counts[0]
        assert counts[3] > counts[6]


class TestDeterminism:
    @pytest.mark.parametrize("personality", ALL_PERSONALITIES)
    def test_same_seed_same_game(self, personality):
        first, _ = self_play(DecisionPolicy(personality, seed=1234))
        second, _ = self_play(DecisionPolicy(personality, seed=1234))
        assert first == second

    def test_reseed_replays_game(self):
        policy = DecisionPolicy(Personality.UNIFORM_RANDOM, seed=99)
        first, _ = self_play(policy)
        policy.reseed(99)
        second, _ = self_play(policy)
        assert first == second

    @pytest.mark.parametrize("seed", range(5))
    def test_self_play_finishes_cleanly(self, seed):
        moves, state = self_play(DecisionPolicy(seed=seed))
        assert state.is_game_over
        assert state.board.floating_cells() == []
        assert len(moves) == state.move_count
        if state.winner is not None:
            assert state.winner in (Player.ONE, Player.TWO)
