import logging
import random
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel, Field, field_validator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from . import core
from .config import Settings
from .storage import BestScoreStore, JsonFileBestScoreStore

logger = logging.getLogger(__name__)

settings = Settings.from_env()

# Initialize the rate limiter
limiter = Limiter(key_func=get_remote_address)
app = FastAPI(
    title="2048 Game API",
    description="A stateless API for playing the 2048 game. "\
                "The client holds the game state (board, score, history) and sends it back with every request.",
    version="1.0.0"
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

_store = JsonFileBestScoreStore(settings.best_score_path)


def get_store() -> BestScoreStore:
    return _store


def get_rng():
    return random

# --- Pydantic Models for API requests and responses ---

class TileData(BaseModel):
    """A single tile on the board."""
    value: int = Field(..., ge=2, description="Tile value, a power of two.")
    id: str = Field(..., description="Stable identity used to animate the same tile across moves.")
    merged_from: Optional[List["TileData"]] = Field(
        default=None,
        description="The two tiles merged into this one during the last move, if any."
    )
    is_new: bool = Field(default=False, description="True if the tile appeared during the last move.")

    @field_validator("value")
    @classmethod
    def check_power_of_two(cls, value: int) -> int:
        if value & (value - 1):
            raise ValueError("Tile value must be a power of two.")
        return value

    @field_validator("merged_from")
    @classmethod
    def check_pair(cls, value):
        if value is not None and len(value) != 2:
            raise ValueError("merged_from must hold exactly two tiles.")
        return value


BoardData = List[List[Optional[TileData]]]


def _check_board_shape(board: BoardData) -> BoardData:
    if len(board) != core.BOARD_SIZE or not all(len(row) == core.BOARD_SIZE for row in board):
        raise ValueError(f"Board must be a {core.BOARD_SIZE}x{core.BOARD_SIZE} matrix.")
    return board


class HistoryEntryData(BaseModel):
    """A previous (board, score) pair kept for undo."""
    board: BoardData = Field(..., description="Board before the move.")
    score: int = Field(..., ge=0, description="Score before the move.")

    @field_validator("board")
    @classmethod
    def check_board_shape(cls, board: BoardData) -> BoardData:
        return _check_board_shape(board)


class GameStateData(BaseModel):
    """Represents the complete state of a game instance."""
    board: BoardData = Field(..., description="The 4 x 4 game board; null marks an empty cell.")
    score: int = Field(..., ge=0, description="Current score of the game.")
    best_score: int = Field(default=0, ge=0, description="Best score across games.")
    won: bool = Field(default=False, description="Sticky flag set once a 2048 tile appears.")
    over: bool = Field(default=False, description="True when no legal move remains.")
    history: List[HistoryEntryData] = Field(
        default_factory=list,
        max_length=core.HISTORY_LIMIT,
        description="Previous states, most recent last."
    )
    progress: core.GameProgressState = Field(
        default=core.GameProgressState.IN_PROGRESS,
        description="Current progress state of the game (IN_PROGRESS, GAME_WON, GAME_OVER). Ignored on input."
    )
    can_undo: bool = Field(default=False, description="Whether undo is available. Ignored on input.")

    @field_validator("board")
    @classmethod
    def check_board_shape(cls, board: BoardData) -> BoardData:
        return _check_board_shape(board)


class MoveRequestData(BaseModel):
    """Data required to make a move."""
    state: GameStateData = Field(..., description="Current game state before the move.")
    direction: core.Direction = Field(..., description="Direction of the move (up, down, left, right).")


class UndoRequestData(BaseModel):
    """Data required to undo the last move."""
    state: GameStateData = Field(..., description="Current game state.")


class MoveResponseData(GameStateData):
    """Response after a move, including the new game state and move effectiveness."""
    move_was_effective: bool = Field(
        ...,
        description="True if the move resulted in a change to the board state, False otherwise."
    )
    message: Optional[str] = Field(
        default=None,
        description="An optional message, e.g., if a move was invalid, game ended, or other info."
    )

# --- Conversion between API models and engine values ---

def _tile_from_data(data: Optional[TileData]) -> Optional[core.Tile]:
    if data is None:
        return None
    merged_from = None
    if data.merged_from is not None:
        merged_from = (_tile_from_data(data.merged_from[0]), _tile_from_data(data.merged_from[1]))
    return core.Tile(value=data.value, id=data.id, merged_from=merged_from, is_new=data.is_new)


def _tile_to_data(tile: Optional[core.Tile]) -> Optional[TileData]:
    if tile is None:
        return None
    merged_from = None
    if tile.merged_from is not None:
        merged_from = [_tile_to_data(source) for source in tile.merged_from]
    return TileData(value=tile.value, id=tile.id, merged_from=merged_from, is_new=tile.is_new)


def _board_from_data(board: BoardData) -> core.Board:
    return tuple(tuple(_tile_from_data(cell) for cell in row) for row in board)


def _board_to_data(board: core.Board) -> BoardData:
    return [[_tile_to_data(tile) for tile in row] for row in board]


def state_from_data(data: GameStateData) -> core.GameState:
    return core.GameState(
        board=_board_from_data(data.board),
        score=data.score,
        best_score=data.best_score,
        won=data.won,
        over=data.over,
        history=tuple(
            core.HistoryEntry(board=_board_from_data(entry.board), score=entry.score)
            for entry in data.history
        ),
    )


def state_to_fields(state: core.GameState) -> dict:
    return dict(
        board=_board_to_data(state.board),
        score=state.score,
        best_score=state.best_score,
        won=state.won,
        over=state.over,
        history=[
            HistoryEntryData(board=_board_to_data(entry.board), score=entry.score)
            for entry in state.history
        ],
        progress=core.determine_game_status(state),
        can_undo=state.can_undo,
    )

def _persist_best_score(store: BestScoreStore, score: int) -> None:
    # Clients carry their own best score; never lower the stored record.
    try:
        if score > store.get_best_score():
            logger.info("New best score: %d", score)
            store.set_best_score(score)
    except (OSError, ValueError) as e:
        logger.warning("Could not persist best score %d: %s", score, e)

# --- API Endpoints ---

@app.post("/game/new", response_model=GameStateData, summary="Start a New 2048 Game")
@limiter.limit(settings.rate_limit)
def start_new_game(
    request: Request,
    store: BestScoreStore = Depends(get_store),
    rng=Depends(get_rng),
):
    """
    Initializes a new 2048 game.

    Returns the initial game state: the board with two random tiles,
    score 0, the persisted best score, and an empty history.
    """
    try:
        best_score = store.get_best_score()
    except (OSError, ValueError) as e:
        logger.warning("Could not read best score: %s", e)
        best_score = 0

    try:
        initial_state = core.new_game(best_score=best_score, rng=rng)
        return GameStateData(**state_to_fields(initial_state))
    except Exception as e:
        logger.error(f"Unexpected error in /game/new: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"An unexpected error occurred during game creation: {str(e)}")


@app.post("/game/move", response_model=MoveResponseData, summary="Make a Move in the Game")
@limiter.limit(settings.rate_limit)
def make_move(
    request: Request,
    request_data: MoveRequestData,
    store: BestScoreStore = Depends(get_store),
    rng=Depends(get_rng),
):
    """
    Processes a player's move in the game.

    Requires the current `state` and the `direction` of the move.

    The API will:
    1. Slide and merge the tiles in the chosen direction.
    2. If the move changed the board, add a new random tile (2 or 4) and push the
       previous board onto the history.
    3. Update the score, best score, win and game-over flags.

    Returns the updated game state, whether the move was effective, and an optional message.
    """
    message_for_client: Optional[str] = None

    try:
        current_state = state_from_data(request_data.state)
        if current_state.over:
            new_state = current_state
        else:
            new_state = core.move(current_state, request_data.direction, rng=rng)
        move_was_effective = new_state is not current_state

        if move_was_effective:
            new_best = core.best_score_improved(current_state, new_state)
            if new_best is not None:
                _persist_best_score(store, new_best)
        else:
            message_for_client = "Move was not effective; board state unchanged by slide."

        current_progress = core.determine_game_status(new_state)

        # Enhance client message based on game status
        if new_state.over:
            message_for_client = "Game Over. No more valid moves."
        elif current_progress == core.GameProgressState.GAME_WON and not current_state.won:
            message_for_client = "Congratulations! You won!"

        return MoveResponseData(
            **state_to_fields(new_state),
            move_was_effective=move_was_effective,
            message=message_for_client
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Error processing move: {str(e)}")
    except Exception as e:
        logger.error(f"Unexpected error in /game/move: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"An unexpected server error occurred while processing the move: {str(e)}")


@app.post("/game/undo", response_model=GameStateData, summary="Undo the Last Move")
@limiter.limit(settings.rate_limit)
def undo_move(request: Request, request_data: UndoRequestData):
    """
    Restores the most recent board and score from the state's history.

    With an empty history the state is returned unchanged.
    """
    try:
        restored = core.undo(state_from_data(request_data.state))
        return GameStateData(**state_to_fields(restored))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Error processing undo: {str(e)}")
    except Exception as e:
        logger.error(f"Unexpected error in /game/undo: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"An unexpected server error occurred while processing the undo: {str(e)}")
