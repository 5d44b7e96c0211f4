import logging
import random

from slide2048 import core
from slide2048.core import Direction, GameProgressState
from slide2048.session import GameSession
from slide2048.storage import InMemoryBestScoreStore

from tests.helpers import make_state

EMPTY_ROW = [0, 0, 0, 0]
PAIR = [[2, 2, 0, 0], EMPTY_ROW, EMPTY_ROW, EMPTY_ROW]


class BrokenStore:
    def get_best_score(self):
        raise OSError("disk on fire")

    def set_best_score(self, score):
        raise OSError("disk on fire")


def test_new_game_reads_best_score():
    session = GameSession(store=InMemoryBestScoreStore(640), rng=random.Random(1))
    assert session.state.best_score == 640
    assert session.state.score == 0
    assert session.status == GameProgressState.IN_PROGRESS
    assert not session.can_undo


def test_improving_move_writes_best_score():
    store = InMemoryBestScoreStore()
    session = GameSession(store=store, rng=random.Random(1))
    session.state = make_state(PAIR)

    assert session.move(Direction.LEFT)
    assert session.state.score == 4
    assert store.get_best_score() == 4
    assert session.can_undo


def test_move_below_best_does_not_write():
    store = InMemoryBestScoreStore(100)
    session = GameSession(store=store, rng=random.Random(1))
    session.state = make_state(PAIR, best_score=100)
    store.set_best_score(99)

    assert session.move(Direction.LEFT)
    assert store.get_best_score() == 99


def test_no_op_move_reports_false():
    session = GameSession(rng=random.Random(1))
    session.state = make_state([[2, 4, 8, 16], EMPTY_ROW, EMPTY_ROW, EMPTY_ROW])
    before = session.state

    assert not session.move(Direction.LEFT)
    assert session.state is before


def test_moves_ignored_when_over():
    session = GameSession(rng=random.Random(1))
    session.state = make_state(PAIR, over=True)
    before = session.state

    assert not session.move(Direction.LEFT)
    assert session.state is before


def test_undo():
    session = GameSession(rng=random.Random(1))
    assert not session.undo()

    session.state = make_state(PAIR)
    session.move(Direction.LEFT)
    assert session.undo()
    assert core.board_values(session.state.board) == PAIR
    assert session.state.score == 0


def test_store_failures_do_not_break_play(caplog):
    caplog.set_level(logging.WARNING)
    session = GameSession(store=BrokenStore(), rng=random.Random(1))
    assert session.state.best_score == 0
    assert "Could not read best score" in caplog.text

    session.state = make_state(PAIR)
    assert session.move(Direction.LEFT)
    assert session.state.best_score == 4
    assert "Could not persist best score 4" in caplog.text


class RejectingStore(InMemoryBestScoreStore):
    def set_best_score(self, score):
        raise ValueError("score rejected")


def test_store_value_error_does_not_break_move(caplog):
    session = GameSession(store=RejectingStore(), rng=random.Random(1))
    session.state = make_state(PAIR)

    assert session.move(Direction.LEFT)
    assert session.state.score == 4
    assert "Could not persist best score 4" in caplog.text
