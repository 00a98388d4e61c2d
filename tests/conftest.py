import numpy as np
import pytest

from demurrage_coin_model.scheduler import VirtualClock


class RecordingRenderer:
    """Keeps every snapshot it is given, plus the terminal call count."""

    def __init__(self):
        self.snapshots = []
        self.terminal_calls = 0
        self.events = []

    def render_snapshot(self, pairs):
        self.snapshots.append(pairs)
        self.events.append(("snapshot", len(pairs)))

    def render_terminal(self):
        self.terminal_calls += 1
        self.events.append(("terminal", 0))


@pytest.fixture
def rng():
    return np.random.default_rng(20240101)


@pytest.fixture
def renderer():
    return RecordingRenderer()


@pytest.fixture
def clock():
    return VirtualClock()
