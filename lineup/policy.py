"""Move selection for automated players.

Every personality follows the same ladder: take a win, else block the
opponent's win, else pick among the moves that do not hand the opponent a
win. Personalities only differ in that last pick, and they see nothing but
the candidate list and the policy's RNG.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Sequence

from lineup.game import GameState, Position
from lineup.safety import MoveSafetyAnalyzer, SafetyReport, SafetyRisk
from lineup.threats import ThreatDetector

if TYPE_CHECKING:
    from lineup.config import EngineSettings

logger = logging.getLogger(__name__)


class Personality(str, Enum):
    UNIFORM_RANDOM = "uniform-random"
    CENTER_WEIGHTED_RANDOM = "center-weighted-random"
    CENTER_FIRST = "center-first"
    POSITIONAL = "positional"


# Weight by distance from the center; anything farther uses the last entry.
CENTER_WEIGHTS = (4, 3, 2, 1)

TieBreak = Callable[[Sequence[SafetyReport], random.Random], SafetyReport]


def uniform_random(candidates: Sequence[SafetyReport], rng: random.Random) -> SafetyReport:
    return rng.choice(candidates)


def center_weighted_random(candidates: Sequence[SafetyReport], rng: random.Random) -> SafetyReport:
    weights = [CENTER_WEIGHTS[min(c.center_distance, len(CENTER_WEIGHTS) - 1)] for c in candidates]
    return rng.choices(candidates, weights=weights, k=1)[0]


def center_first(candidates: Sequence[SafetyReport], rng: random.Random) -> SafetyReport:
    # min() keeps the first of equal distances, so ties go to board-scan order.
    return min(candidates, key=lambda c: c.center_distance)


def most_positional(candidates: Sequence[SafetyReport], rng: random.Random) -> SafetyReport:
    # Nearer the center wins among equal values.
    return max(candidates, key=lambda c: (c.positional_value, -c.center_distance))


TIE_BREAKS: dict[Personality, TieBreak] = {
    Personality.UNIFORM_RANDOM: uniform_random,
    Personality.CENTER_WEIGHTED_RANDOM: center_weighted_random,
    Personality.CENTER_FIRST: center_first,
    Personality.POSITIONAL: most_positional,
}


class NoMoveAvailable:
    """Returned instead of a position when the board offers no legal move.

    Callers treat it as the end of the game (a draw), not as an error.
    """

    _instance: NoMoveAvailable | None = None

    def __new__(cls) -> NoMoveAvailable:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_MOVE_AVAILABLE"


NO_MOVE_AVAILABLE = NoMoveAvailable()


@dataclass(frozen=True)
class Decision:
    position: Position
    reason: str  # "win", "block", "safe" or "fallback"
    personality: Personality


class DecisionPolicy:
    """Chooses a move for an automated player.

    The RNG lives on the instance, so two policies built with the same seed
    make the same choices when shown the same sequence of positions.
    """

    def __init__(
        self,
        personality: Personality | str = Personality.CENTER_WEIGHTED_RANDOM,
        seed: int | None = None,
        detector: ThreatDetector | None = None,
        safety: MoveSafetyAnalyzer | None = None,
    ):
        # Personality("bogus") raises ValueError here, at construction.
        self.personality = Personality(personality)
        self.seed = seed
        self.rng = random.Random(seed)
        self.detector = detector or ThreatDetector()
        self.safety = safety or MoveSafetyAnalyzer(self.detector)

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> DecisionPolicy:
        return cls(personality=settings.personality, seed=settings.seed)

    def reseed(self, seed: int | None = None) -> None:
        self.seed = seed
        self.rng = random.Random(seed)

    def decide(self, state: GameState, personality: Personality | str | None = None) -> Decision | NoMoveAvailable:
        personality = self.personality if personality is None else Personality(personality)

        if not state.legal_moves():
            return NO_MOVE_AVAILABLE

        player = state.current_player

        winning = self.detector.find_winning_moves(state, player)
        if winning:
            return Decision(winning[0], "win", personality)

        blocking = self.detector.find_blocking_moves(state, player)
        if blocking:
            return Decision(blocking[0], "block", personality)

        reports = self.safety.analyze_all(state, player)
        candidates = [r for r in reports if r.risk is not SafetyRisk.HIGH]
        reason = "safe"
        if not candidates:
            candidates, reason = reports, "fallback"

        choice = TIE_BREAKS[personality](candidates, self.rng)
        return Decision(choice.position, reason, personality)

    def select_move(self, state: GameState, personality: Personality | str | None = None) -> Position | NoMoveAvailable:
        decision = self.decide(state, personality)
        if isinstance(decision, NoMoveAvailable):
            logger.info("No legal move for %s", state.current_player.name)
            return decision
        logger.debug(
            "%s plays %r (%s, %s)",
            state.current_player.name,
            decision.position,
            decision.reason,
            decision.personality.value,
        )
        return decision.position
