"""Strategic patterns beyond immediate tactics: forks, setups, chains and traps.

Every detector walks the legal moves of the snapshot, plays each one
hypothetically for the analysed player, and inspects the resulting
position. Winning moves are skipped; they belong to the threat detector.
The four detectors share no state and can run in any order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from lineup.game import Cell, GameState, PlacementDiscipline, Player, Position, SimulatedOutcome, column_of
from lineup.threats import ThreatDetector

logger = logging.getLogger(__name__)

CONNECTED_LINE_LENGTH = 2
CHAIN_MIN_LINES = 2
CHAIN_MIN_LENGTH = 3
TRAP_MAX_GOOD_MOVES = 1


@dataclass(frozen=True)
class Fork:
    position: Position
    cell: Cell
    player: Player
    winning_moves_created: int
    winning_moves: tuple[Position, ...]
    priority: str


@dataclass(frozen=True)
class Setup:
    position: Position
    cell: Cell
    player: Player
    future_forks: int
    connected_threats: int
    priority: str


@dataclass(frozen=True)
class Chain:
    position: Position
    cell: Cell
    player: Player
    connected_lines: int
    max_line_length: int
    priority: str


@dataclass(frozen=True)
class Trap:
    position: Position
    cell: Cell
    player: Player
    good_moves: int
    bad_moves: int
    total_moves: int


@dataclass(frozen=True)
class OpportunityReport:
    forks: tuple[Fork, ...] = ()
    setups: tuple[Setup, ...] = ()
    chains: tuple[Chain, ...] = ()
    traps: tuple[Trap, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.forks or self.setups or self.chains or self.traps)


class OpportunityAnalyzer:
    def __init__(self, detector: ThreatDetector | None = None):
        self.detector = detector or ThreatDetector()

    def analyze_opportunities(self, state: GameState, player: Player | None = None) -> OpportunityReport:
        if player is None:
            player = state.current_player
        # Each candidate is simulated once and shared by all four detectors.
        outcomes = _non_winning_outcomes(state, player)
        report = OpportunityReport(
            forks=tuple(self._forks(state, player, outcomes)),
            setups=tuple(self._setups(player, outcomes)),
            chains=tuple(self._chains(player, outcomes)),
            traps=tuple(self._traps(state, player, outcomes)),
        )
        logger.debug(
            "%s opportunities: %d forks, %d setups, %d chains, %d traps",
            player.name,
            len(report.forks),
            len(report.setups),
            len(report.chains),
            len(report.traps),
        )
        return report

    def detect_forks(self, state: GameState, player: Player) -> list[Fork]:
        """Moves after which ``player`` would have two or more winning replies."""
        return self._forks(state, player, _non_winning_outcomes(state, player))

    def detect_setups(self, state: GameState, player: Player) -> list[Setup]:
        """Moves that prepare later threats.

        A setup either extends some line to one short of a win (a direction
        that could turn into a fork later) or joins at least two directions
        of connected pieces.
        """
        return self._setups(player, _non_winning_outcomes(state, player))

    def detect_chains(self, state: GameState, player: Player) -> list[Chain]:
        """Moves joining two or more connected lines, one of them at least three long."""
        return self._chains(player, _non_winning_outcomes(state, player))

    def detect_traps(self, state: GameState, player: Player) -> list[Trap]:
        """Moves that leave the opponent at most one good (center-column) reply."""
        return self._traps(state, player, _non_winning_outcomes(state, player))

    def _forks(self, state: GameState, player: Player, outcomes: list[SimulatedOutcome]) -> list[Fork]:
        winning_before = self.detector.winning_cells(state, player)
        forks = []
        for outcome in outcomes:
            winning = self.detector.find_winning_moves_after(outcome.state, outcome.cell, winning_before, player)
            if len(winning) >= 2:
                forks.append(
                    Fork(
                        position=outcome.move.position,
                        cell=outcome.cell,
                        player=player,
                        winning_moves_created=len(winning),
                        winning_moves=tuple(winning),
                        priority="high" if len(winning) >= 3 else "medium",
                    )
                )
        return forks

    @staticmethod
    def _setups(player: Player, outcomes: list[SimulatedOutcome]) -> list[Setup]:
        setups = []
        for outcome in outcomes:
            board = outcome.state.board
            lengths = board.line_lengths(*outcome.cell, player)
            future_forks = sum(1 for length in lengths if length >= board.win_length - 1)
            connected = sum(1 for length in lengths if length >= CONNECTED_LINE_LENGTH)
            if future_forks > 0 or connected >= 2:
                setups.append(
                    Setup(
                        position=outcome.move.position,
                        cell=outcome.cell,
                        player=player,
                        future_forks=future_forks,
                        connected_threats=connected,
                        priority="high" if future_forks > 1 else "medium",
                    )
                )
        return setups

    @staticmethod
    def _chains(player: Player, outcomes: list[SimulatedOutcome]) -> list[Chain]:
        chains = []
        for outcome in outcomes:
            board = outcome.state.board
            lengths = board.line_lengths(*outcome.cell, player)
            connected = sum(1 for length in lengths if length >= CONNECTED_LINE_LENGTH)
            longest = max(lengths)
            if connected >= CHAIN_MIN_LINES and longest >= CHAIN_MIN_LENGTH:
                chains.append(
                    Chain(
                        position=outcome.move.position,
                        cell=outcome.cell,
                        player=player,
                        connected_lines=connected,
                        max_line_length=longest,
                        priority="high" if longest >= board.win_length - 1 else "medium",
                    )
                )
        return chains

    @staticmethod
    def _traps(state: GameState, player: Player, outcomes: list[SimulatedOutcome]) -> list[Trap]:
        # Reply counts follow from the legal moves before the candidate: the
        # candidate's own position closes unless gravity leaves room above it.
        legal = state.legal_moves()
        center = state.variant.center_col
        good_before = sum(1 for position in legal if abs(column_of(position) - center) <= 1)
        gravity = state.board.discipline is PlacementDiscipline.GRAVITY

        traps = []
        for outcome in outcomes:
            if outcome.state.is_game_over:
                continue
            closed = 0 if gravity and outcome.row > 0 else 1
            total = len(legal) - closed
            good = good_before
            if closed and abs(column_of(outcome.move.position) - center) <= 1:
                good -= 1
            if total and good <= TRAP_MAX_GOOD_MOVES:
                traps.append(
                    Trap(
                        position=outcome.move.position,
                        cell=outcome.cell,
                        player=player,
                        good_moves=good,
                        bad_moves=total - good,
                        total_moves=total,
                    )
                )
        return traps


def _non_winning_outcomes(state: GameState, player: Player) -> list[SimulatedOutcome]:
    outcomes = []
    for position in state.legal_moves():
        outcome = state.simulate_move(position, player)
        if outcome is not None and not outcome.is_win:
            outcomes.append(outcome)
    return outcomes
