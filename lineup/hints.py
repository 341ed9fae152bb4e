"""Hint coordination: turns analyzer output into tiered hints and forced-move rules.

Help levels:
    0  enabled but silent
    1  critical: winning moves, else forced blocks (enables forced-move mode)
    2  + warnings about moves that hand the opponent an advantage
    3  + strategic suggestions (forks, chains, setups, traps, center play)
    4  + full position analysis payload
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Sequence

from lineup.errors import snapshot_guard
from lineup.events import GAME_RESET, HINTS_TOGGLED, HINTS_UPDATED, MOVE_APPLIED, MOVE_UNDONE, EventEmitter
from lineup.game import Game, GameState, PlacementDiscipline, Player, Position, column_of
from lineup.models import Hint, HintState, HintsToggledMsg, HintsUpdatedMsg
from lineup.opportunities import OpportunityAnalyzer, OpportunityReport
from lineup.safety import MoveSafetyAnalyzer, SafetyReport
from lineup.threats import ThreatDetector

if TYPE_CHECKING:
    from lineup.config import EngineSettings

logger = logging.getLogger(__name__)

MAX_HELP_LEVEL = 4
CENTER_PLAY_MOVE_LIMIT = 6
OPENING_MOVES = 8
MIDGAME_MOVES = 20


def describe_positions(positions: Sequence[Position]) -> str:
    """Human-readable, 1-based list of positions."""
    if all(isinstance(p, int) for p in positions):
        label = "column" if len(positions) == 1 else "columns"
        return f"{label} " + ", ".join(str(p + 1) for p in positions)
    return ", ".join(f"({p[0] + 1}, {p[1] + 1})" for p in positions)


def game_phase(move_count: int) -> str:
    if move_count < OPENING_MOVES:
        return "opening"
    if move_count < MIDGAME_MOVES:
        return "midgame"
    return "endgame"


@dataclass(frozen=True)
class PositionAnalysis:
    """Everything the analyzers report about one snapshot, for one player."""

    player: Player
    move_count: int
    winning_moves: tuple[Position, ...]
    blocking_moves: tuple[Position, ...]
    safety: tuple[SafetyReport, ...] = ()
    opportunities: OpportunityReport | None = None

    @property
    def dangerous_moves(self) -> list[SafetyReport]:
        return [r for r in self.safety if r.gives_opponent_advantage]

    @property
    def safe_moves(self) -> list[SafetyReport]:
        return [r for r in self.safety if not r.gives_opponent_advantage]

    @property
    def game_phase(self) -> str:
        return game_phase(self.move_count)

    def recommendation(self, legal_moves: Sequence[Position]) -> Hint:
        """Single best piece of advice, in strict priority order."""
        if self.winning_moves:
            return Hint(type="immediate_win", moves=self.winning_moves, message="Win right now!", priority="critical")
        if self.blocking_moves:
            return Hint(
                type="block_threat", moves=self.blocking_moves, message="Block your opponent's win!", priority="critical"
            )
        if self.opportunities is not None and self.opportunities.forks:
            return Hint(
                type="create_fork",
                moves=tuple(f.position for f in self.opportunities.forks),
                message="Create a fork!",
                priority="high",
            )
        if self.opportunities is not None and self.opportunities.setups:
            return Hint(
                type="setup_move",
                moves=tuple(s.position for s in self.opportunities.setups),
                message="Prepare an attack",
                priority="medium",
            )
        if self.safe_moves:
            return Hint(
                type="safe_move", moves=tuple(r.position for r in self.safe_moves), message="Safe move", priority="low"
            )
        return Hint(type="any_move", moves=tuple(legal_moves), message="Any move", priority="minimal")

    def to_payload(self) -> dict[str, Any]:
        opportunities = self.opportunities or OpportunityReport()
        return {
            "threats": {
                "winning_moves": list(self.winning_moves),
                "blocking_moves": list(self.blocking_moves),
            },
            "opportunities": {
                "forks": [
                    {"position": f.position, "winning_moves_created": f.winning_moves_created, "priority": f.priority}
                    for f in opportunities.forks
                ],
                "setups": [{"position": s.position, "priority": s.priority} for s in opportunities.setups],
                "chains": [
                    {"position": c.position, "max_line_length": c.max_line_length, "priority": c.priority}
                    for c in opportunities.chains
                ],
                "traps": [{"position": t.position, "good_moves": t.good_moves} for t in opportunities.traps],
            },
            "moves": [
                {
                    "position": r.position,
                    "risk": r.risk.name.lower(),
                    "opponent_winning_replies": r.opponent_winning_replies,
                    "trap_detected": r.trap_detected,
                    "positional_value": round(r.positional_value, 3),
                    "reason": r.reason,
                }
                for r in self.safety
            ],
            "safe_moves": [r.position for r in self.safe_moves],
            "dangerous_moves": [r.position for r in self.dangerous_moves],
            "game_state": {
                "current_player": self.player.value,
                "move_count": self.move_count,
                "game_phase": self.game_phase,
            },
        }


class HintCoordinator:
    """Keeps a HintState in sync with a live Game.

    Every recompute builds a fresh HintState and swaps it in with a single
    assignment, then emits one ``hints_updated`` event, so readers only ever
    see a complete set of hints.
    """

    def __init__(
        self,
        game: Game,
        *,
        detector: ThreatDetector | None = None,
        safety: MoveSafetyAnalyzer | None = None,
        opportunities: OpportunityAnalyzer | None = None,
        events: EventEmitter | None = None,
        debug_checks: bool = False,
    ):
        self.game = game
        self.detector = detector or ThreatDetector()
        self.safety = safety or MoveSafetyAnalyzer(self.detector)
        self.opportunities = opportunities or OpportunityAnalyzer(self.detector)
        self.events = events or EventEmitter()
        self.debug_checks = debug_checks

        self.enabled = False
        self.help_level = 0
        self._hints = HintState()
        self._generation = 0
        self._update_task: asyncio.Task | None = None

        self._unsubscribe = [
            game.events.subscribe(MOVE_APPLIED, self._on_board_changed),
            game.events.subscribe(MOVE_UNDONE, self._on_board_changed),
            game.events.subscribe(GAME_RESET, self._on_game_reset),
        ]

    @classmethod
    def from_settings(cls, game: Game, settings: EngineSettings) -> HintCoordinator:
        coordinator = cls(game, debug_checks=settings.debug_checks)
        if settings.help_level > 0:
            coordinator.set_enabled(True, settings.help_level)
        return coordinator

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def hints(self) -> HintState:
        return self._hints

    @property
    def forced_move_active(self) -> bool:
        return self._hints.forced_move_active

    @property
    def required_moves(self) -> frozenset[Position]:
        return self._hints.required_moves

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def set_enabled(self, enabled: bool, help_level: int = 0) -> None:
        if not 0 <= help_level <= MAX_HELP_LEVEL:
            raise ValueError(f"help level must be between 0 and {MAX_HELP_LEVEL}, got {help_level}")

        self.enabled = enabled
        self.help_level = help_level
        self._cancel_pending()

        if enabled:
            self.update_hints()
        else:
            self._publish(HintState())

        self.events.emit(HINTS_TOGGLED, HintsToggledMsg(enabled=enabled, help_level=help_level))

    def update_hints(self) -> HintState:
        """Recompute hints for the current position. A no-op while disabled."""
        if not self.enabled:
            return self._hints
        self._generation += 1
        self._publish(self._compute(self.game.state, self.help_level))
        return self._hints

    def request_update(self) -> asyncio.Task:
        """Schedule a recompute off the event loop thread.

        A newer request supersedes an older one: the older task is
        cancelled, and if its analysis already finished, its result is
        dropped instead of published.
        """
        self._cancel_pending()
        self._generation += 1
        self._update_task = asyncio.create_task(self._run_update(self._generation))
        return self._update_task

    def reset_game(self) -> None:
        """Discard hints from the previous game."""
        self._cancel_pending()
        self._generation += 1
        if self.enabled:
            self._publish(self._compute(self.game.state, self.help_level))
        else:
            self._publish(HintState())

    def close(self) -> None:
        self._cancel_pending()
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []

    # ------------------------------------------------------------------
    # Queries for the UI
    # ------------------------------------------------------------------

    def is_move_allowed(self, position: Position) -> bool:
        hints = self._hints
        if not hints.forced_move_active:
            return True
        allowed = position in hints.required_moves
        if not allowed:
            logger.debug("Move %r blocked by forced-move mode", position)
        return allowed

    def is_required_move(self, position: Position) -> bool:
        hints = self._hints
        return hints.forced_move_active and position in hints.required_moves

    def get_hint_message(self) -> str:
        """Highest-priority message: critical, then warning, then suggestion."""
        if not self.enabled:
            return ""
        hints = self._hints

        for hint in hints.opportunities + hints.threats:
            if hint.priority == "critical":
                return hint.message
        if hints.warnings:
            return hints.warnings[0].message
        for hint in hints.suggestions:
            if hint.priority != "info":
                return hint.message
        return ""

    def get_comprehensive_analysis(self) -> dict[str, Any]:
        state = self.game.state
        with snapshot_guard(state, enabled=self.debug_checks, label="comprehensive analysis"):
            return self._analyze(state, with_safety=True, with_opportunities=True).to_payload()

    def get_strategic_recommendation(self) -> Hint:
        state = self.game.state
        with snapshot_guard(state, enabled=self.debug_checks, label="strategic recommendation"):
            analysis = self._analyze(state, with_safety=True, with_opportunities=True)
            return analysis.recommendation(state.legal_moves())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _on_board_changed(self, _payload: object) -> None:
        if self.enabled:
            self.update_hints()

    def _on_game_reset(self, _state: object) -> None:
        self.reset_game()

    def _cancel_pending(self) -> None:
        if self._update_task and not self._update_task.done():
            self._update_task.cancel()
        self._update_task = None

    async def _run_update(self, generation: int) -> HintState | None:
        if not self.enabled:
            return None
        state, level = self.game.state, self.help_level
        hints = await asyncio.to_thread(self._compute, state, level)
        if generation != self._generation:
            logger.debug("Discarding superseded hint computation %d", generation)
            return None
        self._publish(hints)
        return hints

    def _publish(self, hints: HintState) -> None:
        self._hints = hints
        self.events.emit(
            HINTS_UPDATED, HintsUpdatedMsg(hints=hints, enabled=self.enabled, help_level=self.help_level)
        )

    def _analyze(self, state: GameState, *, with_safety: bool, with_opportunities: bool) -> PositionAnalysis:
        player = state.current_player
        return PositionAnalysis(
            player=player,
            move_count=state.move_count,
            winning_moves=tuple(self.detector.find_winning_moves(state, player)),
            blocking_moves=tuple(self.detector.find_blocking_moves(state, player)),
            safety=tuple(self.safety.analyze_all(state, player)) if with_safety else (),
            opportunities=self.opportunities.analyze_opportunities(state, player) if with_opportunities else None,
        )

    def _compute(self, state: GameState, level: int) -> HintState:
        if level == 0 or state.is_game_over:
            return HintState()

        with snapshot_guard(state, enabled=self.debug_checks, label="hint computation"):
            analysis = self._analyze(state, with_safety=level >= 2, with_opportunities=level >= 3)

        threats: list[Hint] = []
        opportunities: list[Hint] = []
        warnings: list[Hint] = []
        suggestions: list[Hint] = []
        required: tuple[Position, ...] = ()

        if analysis.winning_moves:
            opportunities.append(
                Hint(
                    type="winning_opportunity",
                    moves=analysis.winning_moves,
                    message="You can WIN here!",
                    priority="critical",
                )
            )
            required = analysis.winning_moves
        elif analysis.blocking_moves:
            threats.append(
                Hint(
                    type="forced_block",
                    moves=analysis.blocking_moves,
                    message="You MUST play here to stop your opponent from winning!",
                    priority="critical",
                )
            )
            required = analysis.blocking_moves

        if level >= 2:
            dangerous = tuple(r.position for r in analysis.dangerous_moves)
            if dangerous:
                warnings.append(
                    Hint(
                        type="trap_avoidance",
                        moves=dangerous,
                        message=f"Avoid {describe_positions(dangerous)} - opponent traps!",
                        priority="warning",
                    )
                )

        if level >= 3:
            suggestions.extend(self._strategic_hints(analysis.opportunities))
            center = self._center_moves(state)
            if center and state.move_count < CENTER_PLAY_MOVE_LIMIT:
                suggestions.append(
                    Hint(
                        type="center_play",
                        moves=center,
                        message="Play in the center for better control",
                        priority="low",
                    )
                )

        if level >= 4:
            suggestions.append(
                Hint(
                    type="detailed_analysis",
                    message="Detailed position analysis available",
                    priority="info",
                    analysis=analysis.to_payload(),
                )
            )

        return HintState(
            threats=tuple(threats),
            opportunities=tuple(opportunities),
            warnings=tuple(warnings),
            suggestions=tuple(suggestions),
            forced_move_active=bool(required),
            required_moves=frozenset(required),
        )

    @staticmethod
    def _strategic_hints(report: OpportunityReport | None) -> list[Hint]:
        if report is None:
            return []
        hints = []
        if report.forks:
            hints.append(
                Hint(
                    type="fork_opportunity",
                    moves=tuple(f.position for f in report.forks),
                    message="Fork available: create two winning threats at once",
                    priority="high" if any(f.priority == "high" for f in report.forks) else "medium",
                )
            )
        if report.chains:
            hints.append(
                Hint(
                    type="chain_opportunity",
                    moves=tuple(c.position for c in report.chains),
                    message="Connect your lines into a chain",
                    priority="medium",
                )
            )
        if report.setups:
            hints.append(
                Hint(
                    type="setup_move",
                    moves=tuple(s.position for s in report.setups),
                    message="Strategic opportunity: prepare a future attack",
                    priority="medium",
                )
            )
        if report.traps:
            hints.append(
                Hint(
                    type="trap_opportunity",
                    moves=tuple(t.position for t in report.traps),
                    message="Limit your opponent's good replies",
                    priority="low",
                )
            )
        return hints

    @staticmethod
    def _center_moves(state: GameState) -> tuple[Position, ...]:
        center = state.variant.center_col
        moves = state.legal_moves()
        if state.board.discipline is PlacementDiscipline.FREE:
            middle = state.variant.rows // 2
            return tuple(p for p in moves if abs(p[0] - middle) <= 1 and abs(p[1] - center) <= 1)
        return tuple(p for p in moves if abs(column_of(p) - center) <= 1)
