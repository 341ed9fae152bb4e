"""Unit tests for game rules: validation, gravity, win detection, draw, undo."""

import copy
from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from lineup.errors import MoveError
from lineup.events import GAME_OVER, GAME_RESET, MOVE_APPLIED, MOVE_UNDONE
from lineup.game import (
    CONNECT_FOUR,
    GOMOKU,
    Draw,
    Game,
    GameState,
    GameVariant,
    PlacementDiscipline,
    Player,
    Win,
    check_win,
    is_full,
)

TINY = GameVariant("tiny", 2, 2, 3, PlacementDiscipline.FREE)


def connect_four(*bottom_rows, current_player=None):
    rows = ["......."] * (CONNECT_FOUR.rows - len(bottom_rows)) + list(bottom_rows)
    return GameState.from_diagram(rows, CONNECT_FOUR, current_player)


class TestMoveValidation:
    def test_valid_move(self):
        state = GameState.new(GOMOKU)
        assert state.validate_move((7, 7)) is None

    def test_out_of_bounds(self):
        state = GameState.new(GOMOKU)
        assert state.validate_move((-1, 0)) is MoveError.OUT_OF_BOUNDS
        assert state.validate_move((0, GOMOKU.cols)) is MoveError.OUT_OF_BOUNDS
        assert state.validate_move((GOMOKU.rows, 0)) is MoveError.OUT_OF_BOUNDS

    def test_occupied_cell(self):
        state = GameState.new(GOMOKU).apply_move((7, 7)).state
        error = state.validate_move((7, 7))
        assert error is MoveError.CELL_OCCUPIED
        assert error.reason == "Cell is already occupied"

    def test_game_over(self):
        state = replace(GameState.new(GOMOKU), terminal=Draw())
        assert state.validate_move((0, 0)) is MoveError.GAME_ALREADY_OVER

    def test_column_out_of_bounds(self):
        state = GameState.new(CONNECT_FOUR)
        assert state.validate_move(-1) is MoveError.OUT_OF_BOUNDS
        assert state.validate_move(CONNECT_FOUR.cols) is MoveError.OUT_OF_BOUNDS

    def test_column_full(self):
        state = connect_four("X......", "O......", "X......", "O......", "X......", "O......")
        assert state.validate_move(0) is MoveError.COLUMN_FULL
        assert 0 not in state.legal_moves()

    def test_wrong_position_shape(self):
        with pytest.raises(TypeError):
            GameState.new(CONNECT_FOUR).validate_move((5, 3))
        with pytest.raises(TypeError):
            GameState.new(GOMOKU).validate_move(3)

    def test_rejected_move_leaves_state_untouched(self):
        state = GameState.new(GOMOKU).apply_move((7, 7)).state
        before = copy.deepcopy(state)
        result = state.apply_move((7, 7))
        assert not result.ok
        assert result.state is None
        assert state == before


class TestGravity:
    def test_piece_lands_on_lowest_empty_cell(self):
        first = GameState.new(CONNECT_FOUR).apply_move(3)
        assert first.move.cell == (5, 3)
        second = first.state.apply_move(3)
        assert second.move.cell == (4, 3)

    def test_landing_row(self):
        state = connect_four("...X...")
        assert state.board.landing_row(3) == 4
        assert state.board.landing_row(0) == 5

    def test_no_floating_pieces(self):
        state = GameState.new(CONNECT_FOUR)
        for col in [3, 3, 2, 4, 4, 4, 0, 6, 6, 5, 1, 1, 3]:
            result = state.apply_move(col)
            if not result.ok:
                break
            state = result.state
            assert state.board.floating_cells() == []

    def test_diagram_rejects_floating_pieces(self):
        with pytest.raises(ValueError, match=r"\.\.\.X\.\.\."):
            connect_four("...X...", ".......")

    def test_playable_cells(self):
        board = connect_four("...X...").board
        assert board.is_playable(5, 0)
        assert board.is_playable(4, 3)
        assert not board.is_playable(5, 3)
        assert not board.is_playable(3, 3)
        assert not board.is_playable(6, 0)
        assert board.position_of((4, 3)) == 3

    def test_legal_moves_in_scan_order(self):
        state = connect_four("X......", "O......", "X......", "O......", "X......", "O......")
        assert state.legal_moves() == [1, 2, 3, 4, 5, 6]


class TestPlaceStone:
    def test_alternating_turns(self):
        game = Game(GOMOKU)
        game.play((0, 0))
        assert game.state.current_player is Player.TWO
        game.play((1, 0))
        assert game.state.current_player is Player.ONE

    def test_move_count(self):
        game = Game(GOMOKU)
        game.play((0, 0))
        assert game.state.move_count == 1
        game.play((1, 0))
        assert game.state.move_count == 2
        assert [m.sequence_number for m in game.state.history] == [1, 2]

    def test_wrong_turn(self):
        game = Game(GOMOKU)
        result = game.play((0, 0), Player.TWO)
        assert result.error is MoveError.NOT_YOUR_TURN
        assert game.state.move_count == 0


class TestWinDetection:
    def test_horizontal_win(self):
        game = Game(GOMOKU)
        for i in range(4):
            game.play((7, 3 + i))
            game.play((8, 3 + i))
        game.play((7, 7))
        assert game.state.is_game_over
        assert game.state.winner is Player.ONE

    def test_vertical_win(self):
        game = Game(GOMOKU)
        for i in range(4):
            game.play((3 + i, 7))
            game.play((3 + i, 8))
        game.play((7, 7))
        assert game.state.winner is Player.ONE

    def test_diagonal_down_right_win(self):
        game = Game(GOMOKU)
        for i in range(4):
            game.play((i, i))
            game.play((i, i + 1))
        game.play((4, 4))
        assert game.state.winner is Player.ONE
        assert game.state.terminal.line == ((0, 0), (1, 1), (2, 2), (3, 3), (4, 4))

    def test_diagonal_up_right_win(self):
        game = Game(GOMOKU)
        for i in range(4):
            game.play((4 - i, i))
            game.play((0, 5 + i))
        game.play((0, 4))
        assert game.state.winner is Player.ONE

    def test_no_win_with_four(self):
        game = Game(GOMOKU)
        for i in range(3):
            game.play((7, 3 + i))
            game.play((8, 3 + i))
        game.play((7, 6))
        assert not game.state.is_game_over
        assert game.state.winner is None

    def test_second_player_wins(self):
        game = Game(GOMOKU)
        game.play((0, 0))
        for i in range(4):
            game.play((7, i))
            game.play((1, i))
        game.play((7, 4))
        assert game.state.winner is Player.TWO

    def test_winning_line_is_maximal_run(self):
        state = connect_four("OOO.OO.", "XXX.XX.")
        result = state.apply_move(3)
        assert isinstance(result.state.terminal, Win)
        assert result.state.terminal.line == tuple((5, c) for c in range(6))

    def test_check_win_on_empty_cell(self):
        assert check_win(GameState.new(CONNECT_FOUR).board, (5, 3)) is None


class TestDraw:
    def test_full_board_draw(self):
        state = GameState.from_diagram(["XO", "O."], TINY)
        assert not is_full(state.board)
        result = state.apply_move((1, 1))
        assert is_full(result.state.board)
        assert isinstance(result.state.terminal, Draw)
        assert result.state.legal_moves() == []


class TestSimulation:
    def test_simulation_leaves_state_untouched(self):
        state = connect_four("OOO....", "XXX....")
        before = copy.deepcopy(state)
        fingerprint = state.fingerprint()
        outcome = state.simulate_move(3)
        assert outcome.is_win
        assert state == before
        assert state.fingerprint() == fingerprint

    def test_simulate_illegal_move(self):
        state = connect_four("X......", "O......", "X......", "O......", "X......", "O......")
        assert state.simulate_move(0) is None

    def test_simulate_for_other_player(self):
        state = connect_four("OOO....", "XXX....")
        outcome = state.simulate_move(3, Player.TWO)
        assert outcome.move.player is Player.TWO
        assert outcome.row == 5
        assert not outcome.is_win


class TestGameOwner:
    def test_play_emits_move_applied(self):
        game = Game()
        listener = MagicMock()
        game.events.subscribe(MOVE_APPLIED, listener)
        game.play(3)
        listener.assert_called_once()
        payload = listener.call_args[0][0]
        assert payload.move.position == 3
        assert payload.state is game.state

    def test_rejected_move_emits_nothing(self):
        game = Game()
        listener = MagicMock()
        game.events.subscribe(MOVE_APPLIED, listener)
        result = game.play(9)
        assert result.error is MoveError.OUT_OF_BOUNDS
        listener.assert_not_called()

    def test_game_over_event(self):
        game = Game()
        listener = MagicMock()
        game.events.subscribe(GAME_OVER, listener)
        for col in [0, 6, 1, 6, 2, 5]:
            game.play(col)
        listener.assert_not_called()
        game.play(3)
        listener.assert_called_once_with(game.state)
        assert game.play(4).error is MoveError.GAME_ALREADY_OVER

    def test_undo_restores_previous_state(self):
        game = Game()
        game.play(3)
        before = game.state
        listener = MagicMock()
        game.events.subscribe(MOVE_UNDONE, listener)
        game.play(3)
        assert game.undo() is None
        assert game.state == before
        listener.assert_called_once()

    def test_undo_after_win_reopens_game(self):
        game = Game()
        for col in [0, 6, 1, 6, 2, 5, 3]:
            game.play(col)
        assert game.state.is_game_over
        game.undo()
        assert not game.state.is_game_over
        assert game.state.current_player is Player.ONE

    def test_undo_without_moves(self):
        assert Game().undo() is MoveError.NOTHING_TO_UNDO

    def test_reset(self):
        game = Game()
        listener = MagicMock()
        game.events.subscribe(GAME_RESET, listener)
        game.play(3)
        game.reset()
        assert game.state == GameState.new(CONNECT_FOUR)
        listener.assert_called_once_with(game.state)
