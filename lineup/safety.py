"""Move safety: does a candidate move hand the opponent a win or a stacked threat?"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum

from lineup.game import Board, Cell, GameState, PlacementDiscipline, Player, Position
from lineup.threats import ThreatDetector

logger = logging.getLogger(__name__)

WEAK_POSITION_THRESHOLD = 0.5
TRAP_LINE_LENGTH = 3
TRAP_MIN_LINES = 2


class SafetyRisk(IntEnum):
    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3


@dataclass(frozen=True)
class SafetyReport:
    position: Position
    player: Player
    cell: Cell
    risk: SafetyRisk
    opponent_winning_replies: int
    trap_detected: bool
    positional_value: float
    is_immediate_win: bool
    center_distance: int
    reason: str

    @property
    def gives_opponent_advantage(self) -> bool:
        return self.risk is SafetyRisk.HIGH or self.trap_detected


# Per-candidate result of one analysis pass.
AnalysisResult = SafetyReport


def positional_value(board: Board, row: int, col: int) -> float:
    """Center proximity, minus a height penalty on gravity boards, plus contact with other pieces."""
    center_bonus = max(0.0, 1 - 0.2 * abs(col - board.variant.center_col))
    height_penalty = 0.1 * row if board.discipline is PlacementDiscipline.GRAVITY else 0.0
    connectivity = 0.2 * board.occupied_neighbours(row, col)
    return center_bonus - height_penalty + connectivity


def detect_stacking_trap(board: Board, row: int, col: int, opponent: Player) -> bool:
    """Would the opponent's piece on top of (row, col) open two or more 3+ lines?

    Only meaningful under gravity, where our move makes the cell above
    playable for the opponent.
    """
    if board.discipline is not PlacementDiscipline.GRAVITY:
        return False
    above = row - 1
    if above < 0 or board.at(above, col) is not None:
        return False

    lines = sum(1 for length in board.line_lengths(above, col, opponent) if length >= TRAP_LINE_LENGTH)
    return lines >= TRAP_MIN_LINES


class MoveSafetyAnalyzer:
    def __init__(self, detector: ThreatDetector | None = None):
        self.detector = detector or ThreatDetector()

    def evaluate_move(
        self, state: GameState, position: Position, player: Player | None = None
    ) -> SafetyReport | None:
        """Rate ``position`` for ``player``. Returns None if the move is illegal."""
        if player is None:
            player = state.current_player
        return self._evaluate(state, position, player, self.detector.winning_cells(state, player.opponent))

    def _evaluate(
        self, state: GameState, position: Position, player: Player, opponent_wins: list[Cell]
    ) -> SafetyReport | None:
        outcome = state.simulate_move(position, player)
        if outcome is None:
            return None

        row, col = outcome.cell
        board = outcome.state.board
        value = positional_value(board, row, col)
        center_distance = board.center_distance(row, col)

        if outcome.is_win:
            return SafetyReport(
                position=position,
                player=player,
                cell=outcome.cell,
                risk=SafetyRisk.NONE,
                opponent_winning_replies=0,
                trap_detected=False,
                positional_value=value,
                is_immediate_win=True,
                center_distance=center_distance,
                reason="Winning move",
            )

        replies = len(
            self.detector.find_winning_moves_after(outcome.state, outcome.cell, opponent_wins, player.opponent)
        )
        trap = detect_stacking_trap(board, row, col, player.opponent)

        if replies:
            risk, reason = SafetyRisk.HIGH, f"Gives opponent {replies} winning move(s)"
        elif trap:
            risk, reason = SafetyRisk.MEDIUM, "Creates opportunity for opponent"
        elif value < WEAK_POSITION_THRESHOLD:
            risk, reason = SafetyRisk.MEDIUM, "Weak positional move"
        else:
            risk, reason = SafetyRisk.LOW, "Safe move"

        return SafetyReport(
            position=position,
            player=player,
            cell=outcome.cell,
            risk=risk,
            opponent_winning_replies=replies,
            trap_detected=trap,
            positional_value=value,
            is_immediate_win=False,
            center_distance=center_distance,
            reason=reason,
        )

    def analyze_all(self, state: GameState, player: Player | None = None) -> list[SafetyReport]:
        """One report per legal move, in board-scan order."""
        if player is None:
            player = state.current_player
        opponent_wins = self.detector.winning_cells(state, player.opponent)
        reports = []
        for position in state.legal_moves():
            report = self._evaluate(state, position, player, opponent_wins)
            if report is not None:
                reports.append(report)
        return reports

    def get_dangerous_moves(self, state: GameState, player: Player | None = None) -> list[SafetyReport]:
        dangerous = [r for r in self.analyze_all(state, player) if r.gives_opponent_advantage]
        if dangerous:
            logger.debug("Dangerous moves: %s", [r.position for r in dangerous])
        return dangerous

    def get_safe_moves(self, state: GameState, player: Player | None = None) -> list[SafetyReport]:
        return [r for r in self.analyze_all(state, player) if not r.gives_opponent_advantage]
