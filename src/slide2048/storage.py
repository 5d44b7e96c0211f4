# storage.py
# Best-score persistence: one integer in one logical slot.

import json
import logging
from pathlib import Path
from typing import Protocol, Union

logger = logging.getLogger(__name__)

BEST_SCORE_KEY = "bestScore"


class BestScoreStore(Protocol):
    def get_best_score(self) -> int:
        ...

    def set_best_score(self, score: int) -> None:
        ...


class InMemoryBestScoreStore:
    """Keeps the best score for the lifetime of the process."""

    def __init__(self, best_score: int = 0):
        self._best_score = best_score

    def get_best_score(self) -> int:
        return self._best_score

    def set_best_score(self, score: int) -> None:
        self._best_score = score


class JsonFileBestScoreStore:
    """
    Stores the best score as {"bestScore": <int>} in a JSON file.
    A missing, unreadable or malformed file reads as 0. Write errors propagate
    to the caller as OSError.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def get_best_score(self) -> int:
        if not self.path.exists():
            return 0
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
            score = int(data[BEST_SCORE_KEY])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring unreadable best score file %s: %s", self.path, e)
            return 0
        return max(score, 0)

    def set_best_score(self, score: int) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as fh:
                json.dump({BEST_SCORE_KEY: int(score)}, fh)
            tmp_path.replace(self.path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
        logger.debug("Wrote best score %d to %s", score, self.path)
