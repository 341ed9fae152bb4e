"""Error taxonomy shared by the rules and the analyzers."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Protocol

logger = logging.getLogger(__name__)


class MoveError(Enum):
    """Why a move was rejected. The value is the reason shown to the player."""

    OUT_OF_BOUNDS = "Coordinates out of bounds"
    CELL_OCCUPIED = "Cell is already occupied"
    COLUMN_FULL = "Column is full"
    GAME_ALREADY_OVER = "Game is already over"
    NOT_YOUR_TURN = "Not your turn"
    NOTHING_TO_UNDO = "No moves to undo"

    @property
    def reason(self) -> str:
        return self.value


class AnalysisInvariantViolation(RuntimeError):
    """An analysis pass changed the state it was only allowed to read."""


class _Fingerprinted(Protocol):
    def fingerprint(self) -> int: ...


@contextmanager
def snapshot_guard(
    state: _Fingerprinted, *, enabled: bool = True, label: str = "analysis"
) -> Iterator[None]:
    """Raise AnalysisInvariantViolation if ``state`` changes inside the block."""
    if not enabled:
        yield
        return

    before = state.fingerprint()
    yield
    after = state.fingerprint()
    if before != after:
        logger.error("%s mutated its input state (%x -> %x)", label, before, after)
        raise AnalysisInvariantViolation(f"{label} mutated the game state it was given")
