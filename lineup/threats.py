"""Immediate tactics: moves that win now, and moves that stop the opponent winning next turn."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from lineup.game import DIRECTIONS, Cell, GameState, Player, Position

logger = logging.getLogger(__name__)


def find_winning_moves(state: GameState, player: Player) -> list[Position]:
    """Legal positions where ``player`` completes a line, in board-scan order.

    Each candidate is scored as a virtual placement on the snapshot's board;
    nothing is written anywhere.
    """
    board = state.board
    winning = []
    for position in state.legal_moves():
        row, col = board.target_cell(position)
        if board.completes_line(row, col, player):
            winning.append(position)
    return winning


def find_blocking_moves(state: GameState, player: Player) -> list[Position]:
    """Positions ``player`` must take to deny the opponent an immediate win."""
    return find_winning_moves(state, player.opponent)


def find_winning_moves_after(
    state: GameState, played: Cell, winning_before: Iterable[Cell], player: Player
) -> list[Position]:
    """Winning positions for ``player`` in ``state``, the position right after ``played`` was filled.

    ``winning_before`` are the cells where ``player`` could win before that
    move. A single move only changes lines through its own cell and, under
    gravity, uncovers the cell above it, so only those cells and the old
    winning cells are rechecked. Same result as ``find_winning_moves`` on
    ``state``, without scanning every legal move.
    """
    if state.is_game_over:
        return []

    board = state.board
    row, col = played
    candidates = set(winning_before)
    candidates.add((row - 1, col))
    for dr, dc in DIRECTIONS:
        for step in range(1, board.win_length):
            candidates.add((row + dr * step, col + dc * step))
            candidates.add((row - dr * step, col - dc * step))

    positions = [
        board.position_of((r, c))
        for r, c in candidates
        if board.is_playable(r, c) and board.completes_line(r, c, player)
    ]
    return sorted(positions)


@dataclass(frozen=True)
class ImmediateThreats:
    player: Player
    winning_moves: tuple[Position, ...]
    blocking_moves: tuple[Position, ...]

    @property
    def has_immediate_threat(self) -> bool:
        return bool(self.blocking_moves)

    @property
    def has_winning_move(self) -> bool:
        return bool(self.winning_moves)


class ThreatDetector:
    """Stateless wrapper so analyzers and policies can share or swap a detector."""

    def find_winning_moves(self, state: GameState, player: Player) -> list[Position]:
        return find_winning_moves(state, player)

    def find_blocking_moves(self, state: GameState, player: Player) -> list[Position]:
        return find_blocking_moves(state, player)

    def find_winning_moves_after(
        self, state: GameState, played: Cell, winning_before: Iterable[Cell], player: Player
    ) -> list[Position]:
        return find_winning_moves_after(state, played, winning_before, player)

    def winning_cells(self, state: GameState, player: Player) -> list[Cell]:
        return [state.board.target_cell(p) for p in self.find_winning_moves(state, player)]

    def detect_immediate_threats(self, state: GameState, player: Player | None = None) -> ImmediateThreats:
        if player is None:
            player = state.current_player
        threats = ImmediateThreats(
            player=player,
            winning_moves=tuple(self.find_winning_moves(state, player)),
            blocking_moves=tuple(self.find_blocking_moves(state, player)),
        )
        logger.debug(
            "%s: %d winning, %d blocking", player.name, len(threats.winning_moves), len(threats.blocking_moves)
        )
        return threats
