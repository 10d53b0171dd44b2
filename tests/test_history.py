"""
Unit tests for the linear undo history.
"""

import numpy as np
import pytest

from conftest import BLACK, RED, WHITE, solid
from knit_chart.history import History


def _frame(value):
    return solid(2, 2, (value, value, value))


class TestHistory:
    def test_empty_history(self):
        history = History()
        assert len(history) == 0
        assert history.position == -1
        assert history.current is None
        assert history.undo() is None

    def test_push_stores_copies(self):
        history = History()
        frame = _frame(10)
        history.push(frame, [BLACK])
        frame[...] = 0
        assert history.current.bitmap[0, 0, 0] == 10
        assert history.current.palette == [BLACK]

    def test_undo_steps_back_until_start(self):
        history = History()
        for v in (1, 2, 3):
            history.push(_frame(v))
        assert history.undo().bitmap[0, 0, 0] == 2
        assert history.undo().bitmap[0, 0, 0] == 1
        assert history.undo() is None
        assert history.position == 0

    def test_push_after_undo_truncates(self):
        history = History()
        for v in (1, 2, 3):
            history.push(_frame(v))
        history.undo()
        history.undo()
        history.push(_frame(9))
        assert len(history) == 2
        assert history.position == 1
        assert history.undo().bitmap[0, 0, 0] == 1

    def test_limit_drops_oldest(self):
        history = History(limit=3)
        for v in range(5):
            history.push(_frame(v))
        assert len(history) == 3
        assert history.position == 2
        assert history.undo().bitmap[0, 0, 0] == 3
        assert history.undo().bitmap[0, 0, 0] == 2
        assert history.undo() is None

    def test_current_is_independent_copy(self):
        history = History()
        history.push(_frame(5), [RED, WHITE])
        snap = history.current
        snap.bitmap[...] = 0
        snap.palette.append(BLACK)
        assert history.current.bitmap[0, 0, 0] == 5
        assert history.current.palette == [RED, WHITE]

    def test_clear(self):
        history = History()
        history.push(_frame(1))
        history.clear()
        assert len(history) == 0
        assert not history.can_undo

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            History(limit=0)

    def test_hex_palette_normalised(self):
        history = History()
        history.push(np.zeros((1, 1, 4), dtype=np.uint8), ["#ff0000"])
        assert history.current.palette == [RED]
