"""Fork-join helpers shared by the parallel kernels.

A kernel opens one :class:`WorkerPool` for the duration of its call and runs
each parallel region through :meth:`WorkerPool.run_region`, which does not
return before every task of the region has finished. That return is the
barrier between consecutive regions.

Every task names the part of the matrix it writes. With
``KernelConfig.check_writes`` enabled the pool verifies that no two tasks of a
region write the same cell before forking them.
"""

from __future__ import annotations

import os
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from types import TracebackType
from typing import Callable, List, Optional, Protocol, Sequence

import numpy as np
import numpy.typing as npt

from .exceptions import AlgorithmError, ConfigError
from .logger import Logger, NoopLogger


@dataclass(frozen=True)
class KernelConfig:
    """Parallel-region configuration passed into every kernel invocation.

    Attributes:
        threads: Worker threads per parallel region (already clamped by the
            caller, see :func:`clamp_threads`).
        block_length: Side length ``L`` of the blocks used by the blocked
            kernel. Ignored by the other kernels.
        chunks_per_thread: The naive kernel splits each ``k`` iteration into
            ``threads * chunks_per_thread`` chunks.
        check_writes: Verify that tasks of one region write disjoint cells.
    """

    threads: int = 1
    block_length: int = 1
    chunks_per_thread: int = 4
    check_writes: bool = False

    def __post_init__(self) -> None:
        if self.threads < 1:
            raise ConfigError(f"threads must be >= 1, got {self.threads}")
        if self.block_length < 1:
            raise ConfigError(f"block length must be >= 1, got {self.block_length}")
        if self.chunks_per_thread < 1:
            raise ConfigError(f"chunks_per_thread must be >= 1, got {self.chunks_per_thread}")


def max_threads() -> int:
    """Return the number of hardware threads available to this process."""
    return os.cpu_count() or 1


def clamp_threads(requested: int, logger: Logger | None = None) -> int:
    """Lower ``requested`` to :func:`max_threads` when it is larger.

    Raises:
        ConfigError: If ``requested`` is not positive.
    """
    if requested < 1:
        raise ConfigError(f"threads must be >= 1, got {requested}")
    limit = max_threads()
    if requested <= limit:
        return requested
    (logger or NoopLogger()).info("threads_clamped", requested=requested, max_threads=limit)
    return limit


# ---------- write regions ----------------------------------------------------


class WriteRegion(Protocol):
    """Set of matrix cells a task may write."""

    def mark(self, counts: npt.NDArray[np.int32], n: int) -> None:
        """Add one to every cell of ``counts`` (flat, row-major) in this region."""
        ...


@dataclass(frozen=True)
class FlatSpan:
    """Cells ``start .. stop-1`` of the flat row-major buffer."""

    start: int
    stop: int

    def mark(self, counts: npt.NDArray[np.int32], n: int) -> None:
        counts[self.start : self.stop] += 1


@dataclass(frozen=True)
class Rect:
    """Rows ``row_start .. row_stop-1`` by columns ``col_start .. col_stop-1``."""

    row_start: int
    row_stop: int
    col_start: int
    col_stop: int

    def mark(self, counts: npt.NDArray[np.int32], n: int) -> None:
        counts.reshape(n, n)[self.row_start : self.row_stop, self.col_start : self.col_stop] += 1


@dataclass(frozen=True)
class Task:
    """One unit of work inside a parallel region."""

    writes: WriteRegion
    run: Callable[[], None]


def assert_disjoint(regions: Sequence[WriteRegion], n: int) -> None:
    """Raise :class:`AlgorithmError` if two regions share a cell of an ``n x n`` matrix."""
    counts = np.zeros(n * n, dtype=np.int32)
    for region in regions:
        region.mark(counts, n)
    if counts.size and counts.max() > 1:
        cell = int(np.argmax(counts))
        raise AlgorithmError(
            f"overlapping writes: cell ({cell // n}, {cell % n}) is written by "
            f"{int(counts[cell])} tasks of the same region"
        )


# ---------- pool -------------------------------------------------------------


class WorkerPool:
    """Fixed-size thread pool scoped to a single kernel call.

    With one thread the tasks run inline, in submission order.
    """

    def __init__(
        self,
        n: int,
        config: KernelConfig,
        logger: Logger | None = None,
    ) -> None:
        self.n = n
        self.config = config
        self.logger = logger or NoopLogger()
        self._executor: Optional[ThreadPoolExecutor] = None
        self.regions = 0
        self.tasks = 0

    def __enter__(self) -> "WorkerPool":
        if self.config.threads > 1:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.threads, thread_name_prefix="apspx"
            )
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def run_region(self, name: str, tasks: Sequence[Task]) -> None:
        """Run ``tasks`` concurrently and return once all of them have finished.

        If any task raised, the first exception (in submission order) is
        re-raised after the whole region has joined.
        """
        if self.config.check_writes:
            assert_disjoint([t.writes for t in tasks], self.n)
        self.regions += 1
        self.tasks += len(tasks)
        if self._executor is None:
            for task in tasks:
                task.run()
        else:
            futures: List[Future[None]] = [self._executor.submit(t.run) for t in tasks]
            wait(futures)
            for fut in futures:
                fut.result()
        self.logger.debug("region_joined", region=name, tasks=len(tasks))


__all__ = [
    "FlatSpan",
    "KernelConfig",
    "Rect",
    "Task",
    "WorkerPool",
    "WriteRegion",
    "assert_disjoint",
    "clamp_threads",
    "max_threads",
]
