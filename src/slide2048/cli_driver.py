# cli_driver.py
# This file is intended to be run to play the 2048 game on the CLI

import logging
from typing import Callable, Optional

from .config import Settings, configure_logging
from .core import Direction, GameProgressState, GameState
from .session import GameSession
from .storage import JsonFileBestScoreStore

logger = logging.getLogger(__name__)

PROMPT = "Move (W/A/S/D or up/down/left/right), U undo, N new game, Q quit: "


def parse_command(raw: str) -> Optional[str]:
    """Maps a line of input to a direction value or one of 'undo', 'new', 'quit'."""
    text = raw.strip().upper()
    if text in ('U', 'UNDO'):
        return 'undo'
    if text in ('N', 'NEW'):
        return 'new'
    if text in ('Q', 'QUIT'):
        return 'quit'
    try:
        return Direction.parse(text).value
    except ValueError:
        return None


def main(input_fn: Callable[[str], str] = input, session: Optional[GameSession] = None) -> int:
    if session is None:
        settings = Settings.from_env()
        configure_logging(settings.log_level)
        session = GameSession(store=JsonFileBestScoreStore(settings.best_score_path))

    display_board_state(session.state, session.status)

    while True:
        try:
            command = parse_command(input_fn(PROMPT))
        except EOFError:
            command = 'quit'

        if command == 'quit':
            print("Quitting game.")
            break
        if command is None:
            print("Invalid input. Use W, A, S, D, U, N or Q.")
            continue

        if command == 'new':
            session.new_game()
        elif command == 'undo':
            if not session.undo():
                print("Nothing to undo.")
        elif session.state.over:
            print("No more moves possible. Press N for a new game or U to undo.")
            continue
        elif not session.move(command):
            print("Move did not change the board. Try a different direction.")
            continue

        display_board_state(session.state, session.status)

    print("\n--- Final Board State ---")
    display_board_state(session.state, session.status)
    return 0


# --- Display Function ---
def display_board_state(state: GameState, progress: GameProgressState):
    """Prints the board, score, best score and game status to the console."""
    print(f"\nScore: {state.score}    Best: {state.best_score}")
    status_message = {
        GameProgressState.IN_PROGRESS: f"Status: {progress.name}",
        GameProgressState.GAME_WON: "YOU WON! Keep going for a higher score.",
        GameProgressState.GAME_OVER: "GAME OVER!"
    }
    print(status_message.get(progress, f"Status: {progress.name} (Unknown)"))
    if state.won and state.over:
        print("GAME OVER!")

    for row in state.board:
        print("\t".join(str(tile.value) if tile is not None else "." for tile in row))
    print("-" * (len(state.board) * 6))


if __name__ == "__main__":
    raise SystemExit(main())
