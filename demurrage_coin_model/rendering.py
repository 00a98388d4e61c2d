"""
Snapshot renderers for the decay loop.

A renderer only displays what it is given; it never touches scheduler state.
Snapshots arrive as immutable tuples of (coin_id, lifetime_seconds) pairs in
ascending lifetime order.
"""

from __future__ import annotations

import sys
from typing import Protocol, Sequence, TextIO

import pandas as pd


class Renderer(Protocol):
    def render_snapshot(self, pairs: Sequence[tuple[int, float]]) -> None:
        ...

    def render_terminal(self) -> None:
        ...


class NullRenderer:
    def render_snapshot(self, pairs: Sequence[tuple[int, float]]) -> None:
        pass

    def render_terminal(self) -> None:
        pass


def snapshot_frame(pairs: Sequence[tuple[int, float]]) -> pd.DataFrame:
    return pd.DataFrame(list(pairs), columns=["coin_id", "lifetime_s"])


class TableRenderer:
    """Print each snapshot as a table of remaining coins."""

    def __init__(self, stream: TextIO | None = None, *, float_format: str = "{:.3f}"):
        self.stream = stream if stream is not None else sys.stdout
        self.float_format = float_format
        self._n = 0

    def render_snapshot(self, pairs: Sequence[tuple[int, float]]) -> None:
        df = snapshot_frame(pairs)
        header = f"[SNAPSHOT {self._n}] coins in circulation: {len(df)}"
        body = df.to_string(index=False, float_format=self.float_format.format)
        print(header, file=self.stream)
        print(body, file=self.stream)
        print("", file=self.stream)
        self._n += 1

    def render_terminal(self) -> None:
        print("[SNAPSHOT] all coins expired", file=self.stream)
