import random

from slide2048 import core


def make_board(values, seed=0):
    return core.board_from_values(values, rng=random.Random(seed))


def make_state(values, **kwargs):
    return core.GameState(board=make_board(values), **kwargs)


def spawned_cells(expected, actual):
    """Cells that hold a tile in `actual` but are empty in `expected` (value grids)."""
    return [
        (r, c)
        for r in range(core.BOARD_SIZE)
        for c in range(core.BOARD_SIZE)
        if expected[r][c] == 0 and actual[r][c] != 0
    ]


def assert_one_spawn(expected, actual):
    """`actual` equals `expected` except for exactly one new 2 or 4 on an empty cell."""
    spawned = spawned_cells(expected, actual)
    assert len(spawned) == 1
    r, c = spawned[0]
    assert actual[r][c] in (2, 4)
    patched = [list(row) for row in actual]
    patched[r][c] = 0
    assert patched == [list(row) for row in expected]
