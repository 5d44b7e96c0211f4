# session.py
# Holds the single live GameState on behalf of a UI and talks to best-score storage.

import logging
from typing import Optional

from . import core
from .storage import BestScoreStore, InMemoryBestScoreStore

logger = logging.getLogger(__name__)


class GameSession:
    """
    Owns the current game state between calls to the stateless engine.

    The engine never touches storage: the session reads the best score when a
    game starts and writes it after any move that raises it. Storage failures
    are logged and never interrupt play.
    """

    def __init__(self, store: Optional[BestScoreStore] = None, rng=None):
        self.store = store if store is not None else InMemoryBestScoreStore()
        self.rng = rng
        self.state = self.new_game()

    def new_game(self) -> core.GameState:
        self.state = core.new_game(best_score=self._read_best_score(), rng=self.rng)
        return self.state

    def move(self, direction) -> bool:
        """Applies a move. Returns True when the board changed."""
        if self.state.over:
            logger.debug("Ignoring move %r, game is over", direction)
            return False

        previous = self.state
        self.state = core.move(previous, direction, rng=self.rng)
        if self.state is previous:
            return False

        new_best = core.best_score_improved(previous, self.state)
        if new_best is not None:
            self._write_best_score(new_best)
        return True

    def undo(self) -> bool:
        """Steps back one move. Returns False when there is nothing to undo."""
        if not self.state.can_undo:
            return False
        self.state = core.undo(self.state)
        return True

    @property
    def can_undo(self) -> bool:
        return self.state.can_undo

    @property
    def status(self) -> core.GameProgressState:
        return core.determine_game_status(self.state)

    def _read_best_score(self) -> int:
        try:
            return self.store.get_best_score()
        except (OSError, ValueError) as e:
            logger.warning("Could not read best score: %s", e)
            return 0

    def _write_best_score(self, score: int) -> None:
        logger.info("New best score: %d", score)
        try:
            self.store.set_best_score(score)
        except (OSError, ValueError) as e:
            logger.warning("Could not persist best score %d: %s", score, e)
