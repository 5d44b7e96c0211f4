# core.py
# This file is the stateless board transition engine for the 2048 game.
# Every function takes a value and returns a new value; nothing is mutated in place.

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple
import logging
import random

logger = logging.getLogger(__name__)

BOARD_SIZE = 4
WIN_TILE = 2048
HISTORY_LIMIT = 10
FOUR_PROBABILITY = 0.1


class GameProgressState(Enum):
    """Represents the current progress state of the game."""
    IN_PROGRESS = 1
    GAME_OVER = 2  # Lost
    GAME_WON = 3


class Direction(str, Enum):
    """Represents the possible move directions."""
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @classmethod
    def _missing_(cls, value):
        # Accept "UP", " Left " and friends.
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @classmethod
    def parse(cls, value) -> "Direction":
        """
        Normalizes a direction token.
        Accepts Direction members, their values in any case ("up", " Left "),
        and the W/A/S/D keys.
        Raises:
            ValueError: If the token names no direction.
        """
        if isinstance(value, str) and value.strip().upper() in _KEYS:
            return _KEYS[value.strip().upper()]
        return cls(value)


_KEYS = {
    "W": Direction.UP,
    "A": Direction.LEFT,
    "S": Direction.DOWN,
    "D": Direction.RIGHT,
}


# Number of clockwise quarter turns that make each direction equivalent to a left slide.
_ROTATIONS = {
    Direction.LEFT: 0,
    Direction.DOWN: 1,
    Direction.RIGHT: 2,
    Direction.UP: 3,
}


@dataclass(frozen=True)
class Tile:
    """An occupied cell. `id`, `merged_from` and `is_new` only matter to presentation."""
    value: int
    id: str
    merged_from: Optional[Tuple["Tile", "Tile"]] = None
    is_new: bool = False


Row = Tuple[Optional[Tile], ...]
Board = Tuple[Row, ...]


@dataclass(frozen=True)
class HistoryEntry:
    board: Board
    score: int


@dataclass(frozen=True)
class GameState:
    """Complete snapshot of a game, held by the caller between calls."""
    board: Board
    score: int = 0
    best_score: int = 0
    won: bool = False
    over: bool = False
    history: Tuple[HistoryEntry, ...] = ()

    @property
    def can_undo(self) -> bool:
        return len(self.history) > 0


# --- Board Helper Functions ---

def _source(rng):
    return random if rng is None else rng


def _is_power_of_two(value: int) -> bool:
    return value >= 2 and value & (value - 1) == 0


def _new_tile_id(rng) -> str:
    return "%013x" % int(rng.random() * (1 << 52))


def empty_board() -> Board:
    """Returns a BOARD_SIZE x BOARD_SIZE board with no tiles."""
    return tuple((None,) * BOARD_SIZE for _ in range(BOARD_SIZE))


def board_values(board: Board) -> List[List[int]]:
    """
    Projects a board onto its value pattern (0 for an empty cell).
    Two boards with equal projections are the same position for game rules,
    whatever their tile identities and presentation markers.
    Args:
        board (Board): The board to project.
    Returns:
        List[List[int]]: The value grid.
    """
    return [[tile.value if tile is not None else 0 for tile in row] for row in board]


def board_from_values(values: Sequence[Sequence[int]], rng=None) -> Board:
    """
    Builds a board from a grid of plain integers (0 meaning empty).
    Args:
        values (Sequence[Sequence[int]]): A BOARD_SIZE x BOARD_SIZE grid.
        rng: Source with `random`, used for fresh tile identities. Defaults to the `random` module.
    Returns:
        Board: A board whose tiles carry no presentation markers.
    Raises:
        ValueError: If the grid is not BOARD_SIZE x BOARD_SIZE or holds a value
                    that is neither 0 nor a power of two >= 2.
    """
    rng = _source(rng)
    if len(values) != BOARD_SIZE or not all(len(row) == BOARD_SIZE for row in values):
        raise ValueError("Board must be a %dx%d matrix." % (BOARD_SIZE, BOARD_SIZE))
    rows = []
    for row in values:
        cells = []
        for value in row:
            if value == 0:
                cells.append(None)
            elif isinstance(value, int) and _is_power_of_two(value):
                cells.append(Tile(value=value, id=_new_tile_id(rng)))
            else:
                raise ValueError("Tile values must be powers of two >= 2, got %r." % (value,))
        rows.append(tuple(cells))
    return tuple(rows)


def strip_markers(board: Board) -> Board:
    """Returns the same tiles with `merged_from` and `is_new` cleared."""
    return tuple(tuple(_strip(tile) for tile in row) for row in board)


def _strip(tile: Optional[Tile]) -> Optional[Tile]:
    if tile is None or (tile.merged_from is None and not tile.is_new):
        return tile
    return replace(tile, merged_from=None, is_new=False)


def empty_cells(board: Board) -> List[Tuple[int, int]]:
    """
    Get coordinates of empty cells in the given board, in row-major order.
    Args:
        board (Board): The board to check.
    Returns:
        List[Tuple[int, int]]: List of (row, col) tuples for empty cells.
    """
    return [
        (row, col)
        for row in range(BOARD_SIZE)
        for col in range(BOARD_SIZE)
        if board[row][col] is None
    ]


def spawn_random_tile(board: Board, rng=None) -> Tuple[Board, Optional[Tuple[int, int]]]:
    """
    Places a new tile (90% chance of 2, 10% chance of 4) on a uniformly chosen empty cell.
    Args:
        board (Board): The current game board.
        rng: Random source with `choice` and `random`.
    Returns:
        Tuple[Board, Optional[Tuple[int, int]]]: The new board and the position of the
                                                 spawned tile. A full board is returned
                                                 as is, with None for the position.
    """
    rng = _source(rng)
    cells = empty_cells(board)
    if not cells:
        return board, None

    row, col = rng.choice(cells)
    value = 4 if rng.random() < FOUR_PROBABILITY else 2
    tile = Tile(value=value, id=_new_tile_id(rng), is_new=True)
    new_board = tuple(
        tuple(tile if (r, c) == (row, col) else board[r][c] for c in range(BOARD_SIZE))
        for r in range(BOARD_SIZE)
    )
    logger.debug("Spawned %d at (%d, %d)", value, row, col)
    return new_board, (row, col)


# --- Board Transformations ---

def rotate_board(board: Board, times: int) -> Board:
    """
    Rotates the board clockwise by `times` quarter turns.
    One step moves the cell at (r, c) to (c, BOARD_SIZE - 1 - r). Tiles travel
    with all their attributes.
    Args:
        board (Board): The board to rotate.
        times (int): Number of quarter turns, taken modulo 4.
    Returns:
        Board: A new rotated board.
    """
    last = BOARD_SIZE - 1
    for _ in range(times % 4):
        board = tuple(
            tuple(board[last - col][row] for col in range(BOARD_SIZE))
            for row in range(BOARD_SIZE)
        )
    return board


# --- Line Manipulation (Core Move Logic) ---

def slide_row_left(row: Iterable[Optional[Tile]]) -> Tuple[Row, int]:
    """
    Compacts a row to the left and merges equal neighbours once.
    Merged tiles keep the identity of the left source and are not merged
    again in the same pass, so [2, 2, 2, 2] becomes [4, 4, _, _].
    Args:
        row (Iterable[Optional[Tile]]): The row to process.
    Returns:
        Tuple[Row, int]: The new row and the score produced by its merges.
    """
    cells = list(row)
    tiles = [_strip(tile) for tile in cells if tile is not None]
    new_row: List[Optional[Tile]] = []
    score_delta = 0
    read_idx = 0

    while read_idx < len(tiles):
        current = tiles[read_idx]
        if read_idx + 1 < len(tiles) and current.value == tiles[read_idx + 1].value:
            merged_value = current.value * 2
            new_row.append(Tile(
                value=merged_value,
                id=current.id,
                merged_from=(current, tiles[read_idx + 1]),
                is_new=True,
            ))
            score_delta += merged_value
            read_idx += 2  # Skip the tile that was absorbed
        else:
            new_row.append(current)
            read_idx += 1

    new_row += [None] * (len(cells) - len(new_row))
    return tuple(new_row), score_delta


def move_left(board: Board) -> Tuple[Board, int]:
    """Applies `slide_row_left` to every row, returning the board and total score gained."""
    rows = []
    total_score = 0
    for row in board:
        new_row, score_delta = slide_row_left(row)
        rows.append(new_row)
        total_score += score_delta
    return tuple(rows), total_score


# --- Game State Checks ---

def has_possible_moves(board: Board) -> bool:
    """
    Checks whether any direction can still change the board.
    Args:
        board (Board): The game board.
    Returns:
        bool: True if an empty cell or an adjacent equal pair exists.
    """
    values = board_values(board)
    for row in range(BOARD_SIZE):
        for col in range(BOARD_SIZE):
            if values[row][col] == 0:
                return True
            if col + 1 < BOARD_SIZE and values[row][col] == values[row][col + 1]:
                return True
            if row + 1 < BOARD_SIZE and values[row][col] == values[row + 1][col]:
                return True
    return False


def contains_tile(board: Board, value: int = WIN_TILE) -> bool:
    return any(tile is not None and tile.value == value for row in board for tile in row)


def determine_game_status(state: GameState) -> GameProgressState:
    """
    Determines the progress state shown to the player.
    Args:
        state (GameState): The current game state.
    Returns:
        GameProgressState: GAME_WON once the win flag is set, GAME_OVER when
                           no move is left, IN_PROGRESS otherwise.
    """
    if state.won:
        return GameProgressState.GAME_WON
    if state.over:
        return GameProgressState.GAME_OVER
    return GameProgressState.IN_PROGRESS


def best_score_improved(previous: GameState, current: GameState) -> Optional[int]:
    """Returns the new best score if `current` raised it above `previous`, else None."""
    if current.best_score > previous.best_score:
        return current.best_score
    return None


# --- Core Game Operations ---

def new_game(best_score: int = 0, rng=None) -> GameState:
    """
    Starts a new game with two tiles on distinct random cells.
    Args:
        best_score (int): Best score read from persistence by the caller.
        rng: Random source with `choice` and `random`. Defaults to the `random` module.
    Returns:
        GameState: Zero score, no history, neither won nor over.
    """
    rng = _source(rng)
    board, _ = spawn_random_tile(empty_board(), rng)
    board, _ = spawn_random_tile(board, rng)
    return GameState(board=board, best_score=max(best_score, 0))


def move(state: GameState, direction, rng=None) -> GameState:
    """
    Slides and merges every tile toward `direction`.
    Each direction is reduced to a left slide by rotating the board, then
    rotated back. A move that leaves the value pattern unchanged is rejected
    and the very same `state` object is returned.
    Args:
        state (GameState): The current game state.
        direction (Direction): The move direction. Unrecognized values slide left.
        rng: Random source with `choice` and `random`, used to spawn the new tile.
    Returns:
        GameState: The state after the move, with the previous board and score
                   pushed onto a history bounded to HISTORY_LIMIT entries.
    """
    try:
        rotations = _ROTATIONS[Direction.parse(direction)]
    except ValueError:
        logger.warning("Unrecognized direction %r, sliding left", direction)
        rotations = 0

    moved, score_gained = move_left(rotate_board(state.board, rotations))
    board = rotate_board(moved, (4 - rotations) % 4)

    if board_values(board) == board_values(state.board):
        logger.debug("Move %r left the board unchanged", direction)
        return state

    board, _ = spawn_random_tile(board, rng)

    score = state.score + score_gained
    history = state.history + (HistoryEntry(board=strip_markers(state.board), score=state.score),)
    return GameState(
        board=board,
        score=score,
        best_score=max(score, state.best_score),
        won=state.won or contains_tile(board, WIN_TILE),
        over=not has_possible_moves(board),
        history=history[-HISTORY_LIMIT:],
    )


def undo(state: GameState) -> GameState:
    """
    Restores the most recent history entry.
    `over` is recomputed for the restored board; `won` stays sticky and
    `best_score` is kept. Undo with empty history returns `state` unchanged.
    """
    if not state.history:
        return state

    last = state.history[-1]
    return replace(
        state,
        board=last.board,
        score=last.score,
        over=not has_possible_moves(last.board),
        history=state.history[:-1],
    )
