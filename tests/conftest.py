"""Shared fixtures for the apspx test suite."""

import os

os.environ.setdefault("MPLBACKEND", "Agg")

import pytest

from apspx.kernels import make_kernel
from apspx.matrix import DistanceMatrix
from apspx.parallel import KernelConfig


@pytest.fixture
def chain_matrix() -> DistanceMatrix:
    """Four vertices with unit edges 0 -> 1 -> 2 -> 3."""
    return DistanceMatrix.from_edges(4, [(0, 1), (1, 2), (2, 3)])


class RecordingLogger:
    """Logger collecting ``(level, event, fields)`` tuples."""

    def __init__(self) -> None:
        self.events = []

    def debug(self, event, **fields):
        self.events.append(("debug", event, fields))

    def info(self, event, **fields):
        self.events.append(("info", event, fields))

    def warning(self, event, **fields):
        self.events.append(("warning", event, fields))

    def error(self, event, **fields):
        self.events.append(("error", event, fields))


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


def solve(mode: str, matrix: DistanceMatrix, threads: int = 1, block_length: int = 1) -> DistanceMatrix:
    """Run ``mode`` on a copy of ``matrix`` with write checks enabled."""
    out = matrix.copy()
    cfg = KernelConfig(threads=threads, block_length=block_length, check_writes=True)
    make_kernel(mode, cfg).run(out)
    return out
