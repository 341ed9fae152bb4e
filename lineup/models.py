"""Pydantic models for the hint payloads handed to the UI collaborator."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from lineup.game import Position

HintType = Literal[
    # critical tier
    "winning_opportunity",
    "forced_block",
    # warning tier
    "trap_avoidance",
    # suggestion tier
    "fork_opportunity",
    "chain_opportunity",
    "setup_move",
    "trap_opportunity",
    "center_play",
    "detailed_analysis",
    # strategic recommendations
    "immediate_win",
    "block_threat",
    "create_fork",
    "safe_move",
    "any_move",
]

Priority = Literal["critical", "high", "warning", "medium", "low", "info", "minimal"]


class Hint(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: HintType
    moves: tuple[Position, ...] = ()
    message: str
    priority: Priority
    analysis: dict[str, Any] | None = None


class HintState(BaseModel):
    """Everything the UI needs to render hints for one position.

    Instances are never modified; a recompute builds a new one.
    """

    model_config = ConfigDict(frozen=True)

    threats: tuple[Hint, ...] = ()
    opportunities: tuple[Hint, ...] = ()
    warnings: tuple[Hint, ...] = ()
    suggestions: tuple[Hint, ...] = ()
    forced_move_active: bool = False
    required_moves: frozenset[Position] = Field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        return not (self.threats or self.opportunities or self.warnings or self.suggestions)


# ---------------------------------------------------------------------------
# Coordinator → UI notifications
# ---------------------------------------------------------------------------

class HintsUpdatedMsg(BaseModel):
    type: Literal["hints_updated"] = "hints_updated"
    hints: HintState
    enabled: bool
    help_level: int


class HintsToggledMsg(BaseModel):
    type: Literal["hints_toggled"] = "hints_toggled"
    enabled: bool
    help_level: int
