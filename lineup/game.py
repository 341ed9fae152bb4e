"""Game rules: board state, move validation, simulation, and win detection."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum, IntEnum
from typing import Sequence

from lineup.errors import MoveError
from lineup.events import GAME_OVER, GAME_RESET, MOVE_APPLIED, MOVE_UNDONE, EventEmitter

logger = logging.getLogger(__name__)

# Four directions: horizontal, vertical, diagonal ↘, diagonal ↗
DIRECTIONS = [
    (0, 1),
    (1, 0),
    (1, 1),
    (1, -1),
]

# All eight cells touching a cell, orthogonally or diagonally
NEIGHBOURS = [(dr, dc) for dr in (-1, 0, 1) for dc in (-1, 0, 1) if (dr, dc) != (0, 0)]

Cell = tuple[int, int]
# A column index under gravity, a (row, col) pair under free placement
Position = int | tuple[int, int]


class Player(IntEnum):
    ONE = 1
    TWO = 2

    @property
    def opponent(self) -> Player:
        return Player.TWO if self is Player.ONE else Player.ONE

    @property
    def symbol(self) -> str:
        return "X" if self is Player.ONE else "O"


class PlacementDiscipline(str, Enum):
    GRAVITY = "gravity"
    FREE = "free"


@dataclass(frozen=True)
class GameVariant:
    name: str
    rows: int
    cols: int
    win_length: int
    discipline: PlacementDiscipline

    @property
    def center_col(self) -> int:
        return self.cols // 2

    def resized(self, rows: int, cols: int) -> GameVariant:
        if (rows, cols) == (self.rows, self.cols):
            return self
        return replace(self, name=f"{self.name}-{rows}x{cols}", rows=rows, cols=cols)


CONNECT_FOUR = GameVariant("connect-four", 6, 7, 4, PlacementDiscipline.GRAVITY)
GOMOKU = GameVariant("gomoku", 15, 15, 5, PlacementDiscipline.FREE)

VARIANTS: dict[str, GameVariant] = {v.name: v for v in (CONNECT_FOUR, GOMOKU)}


def column_of(position: Position) -> int:
    return position if isinstance(position, int) else position[1]


@dataclass(frozen=True)
class Board:
    """Immutable grid. Row 0 is the top row.

    ``place`` returns a new board that shares every untouched row with the
    old one, so hypothetical moves never need a defensive deep copy.
    """

    variant: GameVariant
    cells: tuple[tuple[Player | None, ...], ...]

    @classmethod
    def empty(cls, variant: GameVariant) -> Board:
        row = (None,) * variant.cols
        return cls(variant=variant, cells=(row,) * variant.rows)

    @property
    def rows(self) -> int:
        return self.variant.rows

    @property
    def cols(self) -> int:
        return self.variant.cols

    @property
    def win_length(self) -> int:
        return self.variant.win_length

    @property
    def discipline(self) -> PlacementDiscipline:
        return self.variant.discipline

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def at(self, row: int, col: int) -> Player | None:
        return self.cells[row][col]

    def landing_row(self, col: int) -> int | None:
        """Row a gravity piece dropped into ``col`` would occupy, or None if full."""
        for row in range(self.rows - 1, -1, -1):
            if self.cells[row][col] is None:
                return row
        return None

    def placement_error(self, position: Position) -> MoveError | None:
        if self.discipline is PlacementDiscipline.GRAVITY:
            col = _as_column(position)
            if col < 0 or col >= self.cols:
                return MoveError.OUT_OF_BOUNDS
            if self.cells[0][col] is not None:
                return MoveError.COLUMN_FULL
            return None

        row, col = _as_cell(position)
        if not self.in_bounds(row, col):
            return MoveError.OUT_OF_BOUNDS
        if self.cells[row][col] is not None:
            return MoveError.CELL_OCCUPIED
        return None

    def target_cell(self, position: Position) -> Cell:
        """Cell that a legal ``position`` occupies once played."""
        if self.discipline is PlacementDiscipline.GRAVITY:
            col = _as_column(position)
            row = self.landing_row(col)
            if row is None:
                raise ValueError(f"column {col} is full")
            return row, col
        return _as_cell(position)

    def position_of(self, cell: Cell) -> Position:
        return cell[1] if self.discipline is PlacementDiscipline.GRAVITY else cell

    def is_playable(self, row: int, col: int) -> bool:
        """Would the next move be allowed to occupy (row, col)?"""
        if not self.in_bounds(row, col) or self.cells[row][col] is not None:
            return False
        if self.discipline is PlacementDiscipline.GRAVITY:
            return row == self.rows - 1 or self.cells[row + 1][col] is not None
        return True

    def center_distance(self, row: int, col: int) -> int:
        """Column distance from the center under gravity, ring distance from the middle cell otherwise."""
        col_distance = abs(col - self.variant.center_col)
        if self.discipline is PlacementDiscipline.GRAVITY:
            return col_distance
        return max(abs(row - self.rows // 2), col_distance)

    def legal_positions(self) -> list[Position]:
        """Playable positions in board-scan order."""
        if self.discipline is PlacementDiscipline.GRAVITY:
            return [col for col in range(self.cols) if self.cells[0][col] is None]
        return [
            (row, col)
            for row in range(self.rows)
            for col in range(self.cols)
            if self.cells[row][col] is None
        ]

    def place(self, row: int, col: int, player: Player) -> Board:
        new_row = self.cells[row][:col] + (player,) + self.cells[row][col + 1 :]
        return Board(self.variant, self.cells[:row] + (new_row,) + self.cells[row + 1 :])

    def remove(self, row: int, col: int) -> Board:
        new_row = self.cells[row][:col] + (None,) + self.cells[row][col + 1 :]
        return Board(self.variant, self.cells[:row] + (new_row,) + self.cells[row + 1 :])

    def line_length(self, row: int, col: int, dr: int, dc: int, player: Player) -> int:
        """Contiguous run of ``player`` through (row, col) along one axis.

        The cell itself counts as ``player``'s whether or not it is occupied,
        which lets callers score a hypothetical placement without building
        a new board.
        """
        count = 1

        r, c = row + dr, col + dc
        while 0 <= r < self.rows and 0 <= c < self.cols and self.cells[r][c] == player:
            count += 1
            r, c = r + dr, c + dc

        r, c = row - dr, col - dc
        while 0 <= r < self.rows and 0 <= c < self.cols and self.cells[r][c] == player:
            count += 1
            r, c = r - dr, c - dc

        return count

    def line_lengths(self, row: int, col: int, player: Player) -> list[int]:
        return [self.line_length(row, col, dr, dc, player) for dr, dc in DIRECTIONS]

    def completes_line(self, row: int, col: int, player: Player) -> bool:
        return any(
            self.line_length(row, col, dr, dc, player) >= self.win_length
            for dr, dc in DIRECTIONS
        )

    def run(self, row: int, col: int, dr: int, dc: int, player: Player) -> list[Cell]:
        """Cells of the maximal run through (row, col), from one end to the other."""
        start_r, start_c = row, col
        while self.in_bounds(start_r - dr, start_c - dc) and self.cells[start_r - dr][start_c - dc] == player:
            start_r, start_c = start_r - dr, start_c - dc

        cells = [(start_r, start_c)]
        r, c = start_r + dr, start_c + dc
        while self.in_bounds(r, c) and (self.cells[r][c] == player or (r, c) == (row, col)):
            cells.append((r, c))
            r, c = r + dr, c + dc
        return cells

    def occupied_neighbours(self, row: int, col: int) -> int:
        return sum(
            1
            for dr, dc in NEIGHBOURS
            if self.in_bounds(row + dr, col + dc) and self.cells[row + dr][col + dc] is not None
        )

    def floating_cells(self) -> list[Cell]:
        """Occupied cells sitting above an empty cell (always empty under free placement)."""
        if self.discipline is not PlacementDiscipline.GRAVITY:
            return []
        return [
            (row, col)
            for row in range(self.rows - 1)
            for col in range(self.cols)
            if self.cells[row][col] is not None and self.cells[row + 1][col] is None
        ]

    def render(self) -> str:
        return "\n".join(
            "".join("." if cell is None else cell.symbol for cell in row) for row in self.cells
        )


def _as_column(position: Position) -> int:
    if not isinstance(position, int):
        raise TypeError(f"gravity boards take a column index, got {position!r}")
    return position


def _as_cell(position: Position) -> Cell:
    if isinstance(position, int):
        raise TypeError(f"free-placement boards take a (row, col) pair, got {position!r}")
    row, col = position
    return row, col


@dataclass(frozen=True)
class Move:
    position: Position
    player: Player
    sequence_number: int
    cell: Cell


@dataclass(frozen=True)
class Win:
    player: Player
    line: tuple[Cell, ...]


@dataclass(frozen=True)
class Draw:
    pass


def check_win(board: Board, last: Cell) -> Win | None:
    """Check whether the piece at ``last`` completes a line.

    The returned line is the full run achieved, which can be longer than
    the board's win length.
    """
    row, col = last
    player = board.at(row, col)
    if player is None:
        return None

    for dr, dc in DIRECTIONS:
        if board.line_length(row, col, dr, dc, player) >= board.win_length:
            return Win(player=player, line=tuple(board.run(row, col, dr, dc, player)))
    return None


def is_full(board: Board) -> bool:
    return all(cell is not None for row in board.cells for cell in row)


@dataclass(frozen=True)
class MoveResult:
    state: GameState | None = None
    move: Move | None = None
    error: MoveError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class SimulatedOutcome:
    state: GameState
    move: Move

    @property
    def cell(self) -> Cell:
        return self.move.cell

    @property
    def row(self) -> int:
        return self.move.cell[0]

    @property
    def is_win(self) -> bool:
        return isinstance(self.state.terminal, Win)


@dataclass(frozen=True)
class GameState:
    """Read-only snapshot of a game. Every transition returns a new instance."""

    board: Board
    current_player: Player = Player.ONE
    history: tuple[Move, ...] = ()
    terminal: Win | Draw | None = None

    @classmethod
    def new(cls, variant: GameVariant = CONNECT_FOUR) -> GameState:
        return cls(board=Board.empty(variant))

    @classmethod
    def from_diagram(
        cls,
        rows: Sequence[str],
        variant: GameVariant = CONNECT_FOUR,
        current_player: Player | None = None,
    ) -> GameState:
        """Build a state from text rows, top row first.

        ``X`` is Player.ONE, ``O`` is Player.TWO and ``.`` is empty. The
        board takes its size from the diagram and its win length and
        placement discipline from ``variant``.
        """
        if not rows or any(len(line) != len(rows[0]) for line in rows):
            raise ValueError("diagram rows must be non-empty and equally long")

        symbols = {".": None, "X": Player.ONE, "O": Player.TWO}
        try:
            cells = tuple(tuple(symbols[ch] for ch in line) for line in rows)
        except KeyError as exc:
            raise ValueError(f"unknown diagram symbol {exc.args[0]!r}") from None

        board = Board(variant.resized(len(rows), len(rows[0])), cells)
        floating = board.floating_cells()
        if floating:
            raise ValueError(f"floating pieces at {floating}:\n{board.render()}")

        if board.discipline is PlacementDiscipline.GRAVITY:
            order = [(r, c) for c in range(board.cols) for r in range(board.rows - 1, -1, -1)]
        else:
            order = [(r, c) for r in range(board.rows) for c in range(board.cols)]

        history = []
        terminal: Win | Draw | None = None
        for r, c in order:
            player = board.at(r, c)
            if player is None:
                continue
            position: Position = c if board.discipline is PlacementDiscipline.GRAVITY else (r, c)
            history.append(Move(position, player, len(history) + 1, (r, c)))
            if terminal is None:
                terminal = check_win(board, (r, c))
        if terminal is None and is_full(board):
            terminal = Draw()

        if current_player is None:
            ones = sum(1 for move in history if move.player is Player.ONE)
            current_player = Player.ONE if ones * 2 <= len(history) else Player.TWO

        return cls(board, current_player, tuple(history), terminal)

    @property
    def variant(self) -> GameVariant:
        return self.board.variant

    @property
    def move_count(self) -> int:
        return len(self.history)

    @property
    def is_game_over(self) -> bool:
        return self.terminal is not None

    @property
    def winner(self) -> Player | None:
        return self.terminal.player if isinstance(self.terminal, Win) else None

    def legal_moves(self) -> list[Position]:
        if self.terminal is not None:
            return []
        return self.board.legal_positions()

    def validate_move(self, position: Position) -> MoveError | None:
        """Return the reason a move is invalid, or None if it is legal."""
        if self.terminal is not None:
            return MoveError.GAME_ALREADY_OVER
        return self.board.placement_error(position)

    def apply_move(self, position: Position, player: Player | None = None) -> MoveResult:
        """Play ``position`` for ``player`` (default: the player to move).

        Never raises for an illegal move: the error comes back in the
        result and ``self`` is untouched either way.
        """
        error = self.validate_move(position)
        if error is not None:
            return MoveResult(error=error)

        if player is None:
            player = self.current_player
        row, col = self.board.target_cell(position)
        board = self.board.place(row, col, player)
        move = Move(position, player, len(self.history) + 1, (row, col))

        terminal: Win | Draw | None = check_win(board, (row, col))
        if terminal is None and is_full(board):
            terminal = Draw()

        state = GameState(
            board=board,
            current_player=player.opponent,
            history=self.history + (move,),
            terminal=terminal,
        )
        return MoveResult(state=state, move=move)

    def simulate_move(self, position: Position, player: Player | None = None) -> SimulatedOutcome | None:
        """Play a hypothetical move. Returns None if the move is illegal."""
        result = self.apply_move(position, player)
        if not result.ok:
            return None
        return SimulatedOutcome(state=result.state, move=result.move)

    def fingerprint(self) -> int:
        return hash((self.board.cells, self.current_player, self.history, self.terminal))


@dataclass(frozen=True)
class MoveApplied:
    move: Move
    state: GameState


class Game:
    """Owns the live GameState and announces every change to subscribers."""

    def __init__(self, variant: GameVariant = CONNECT_FOUR, events: EventEmitter | None = None):
        self.variant = variant
        self.events = events or EventEmitter()
        self.state = GameState.new(variant)

    def play(self, position: Position, player: Player | None = None) -> MoveResult:
        if player is not None and not self.state.is_game_over and player is not self.state.current_player:
            logger.warning("Rejected move %r by %s: %s", position, player.name, MoveError.NOT_YOUR_TURN.reason)
            return MoveResult(error=MoveError.NOT_YOUR_TURN)

        result = self.state.apply_move(position)
        if not result.ok:
            logger.warning("Rejected move %r: %s", position, result.error.reason)
            return result

        self.state = result.state
        logger.debug("Move %d by %s at %r", result.move.sequence_number, result.move.player.name, position)
        self.events.emit(MOVE_APPLIED, MoveApplied(move=result.move, state=self.state))
        if self.state.is_game_over:
            self.events.emit(GAME_OVER, self.state)
        return result

    def undo(self) -> MoveError | None:
        """Take back the last move. Returns an error if there is nothing to undo."""
        if not self.state.history:
            return MoveError.NOTHING_TO_UNDO

        last = self.state.history[-1]
        self.state = GameState(
            board=self.state.board.remove(*last.cell),
            current_player=last.player,
            history=self.state.history[:-1],
            terminal=None,
        )
        self.events.emit(MOVE_UNDONE, MoveApplied(move=last, state=self.state))
        return None

    def reset(self) -> None:
        self.state = GameState.new(self.variant)
        self.events.emit(GAME_RESET, self.state)
