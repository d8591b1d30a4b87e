"""Sequential and naive-parallel Floyd-Warshall kernels.

Every kernel takes a :class:`~apspx.matrix.DistanceMatrix`, relaxes it in
place until cell ``(i, j)`` holds the shortest distance from ``i`` to ``j`` and
returns a :class:`KernelMetrics` record describing the run.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Type

import numpy as np
import numpy.typing as npt

from .exceptions import ConfigError
from .logger import Logger, NoopLogger
from .matrix import UNREACHABLE, DistanceMatrix
from .parallel import FlatSpan, KernelConfig, Task, WorkerPool


@dataclass(frozen=True)
class KernelMetrics:
    """Performance record of one kernel invocation."""

    kernel: str
    label: str
    n: int
    threads: int
    block_length: int
    wall_ns: int
    phase_ns: Dict[str, int] = field(default_factory=dict)
    counters: Dict[str, int] = field(default_factory=dict)

    @property
    def wall_ms(self) -> float:
        return self.wall_ns / 1e6


class BaseKernel:
    """Common pieces shared by all kernels."""

    #: Mode name used on the command line and in metrics.
    name = "base"
    #: Label of the elapsed-time entry reported by the harness.
    label = "Kernel time"

    def __init__(self, config: Optional[KernelConfig] = None, logger: Logger | None = None) -> None:
        self.cfg = config or KernelConfig()
        self.logger = logger or NoopLogger()
        self.counters: Dict[str, int] = {}
        self.phase_ns: Dict[str, int] = {}

    def check(self, matrix: DistanceMatrix) -> None:
        """Validate ``matrix`` against this kernel's configuration."""

    def run(self, matrix: DistanceMatrix) -> KernelMetrics:
        """Relax ``matrix`` in place and return the run metrics.

        Raises:
            ConfigError: If the configuration does not fit ``matrix``; raised
                before any cell is touched.
        """
        self.check(matrix)
        self.counters = {}
        self.phase_ns = {}
        self.logger.debug("kernel_start", kernel=self.name, n=matrix.n, threads=self.cfg.threads)
        t0 = time.perf_counter_ns()
        self._relax(matrix)
        wall = time.perf_counter_ns() - t0
        self.logger.debug("kernel_done", kernel=self.name, wall_ns=wall)
        return KernelMetrics(
            kernel=self.name,
            label=self.label,
            n=matrix.n,
            threads=self.threads_used,
            block_length=self.cfg.block_length,
            wall_ns=wall,
            phase_ns=dict(self.phase_ns),
            counters=dict(self.counters),
        )

    @property
    def threads_used(self) -> int:
        return self.cfg.threads

    def _relax(self, matrix: DistanceMatrix) -> None:
        raise NotImplementedError


class SequentialKernel(BaseKernel):
    """Reference ``O(V^3)`` relaxation on the calling thread.

    Loop order is ``k`` (intermediate), then ``i`` (source), then ``j``
    (destination, vectorized over the row). When ``k`` is used as an
    intermediate, row ``k`` and column ``k`` already include every relaxation
    through ``0 .. k-1``.
    """

    name = "sequential"
    label = "Sequential time"

    @property
    def threads_used(self) -> int:
        return 1

    def _relax(self, matrix: DistanceMatrix) -> None:
        n = matrix.n
        d = matrix.grid()
        skipped = 0
        for k in range(n):
            row_k = d[k]
            for i in range(n):
                row_i = d[i]
                d_ik = row_i[k]
                if d_ik == UNREACHABLE:
                    skipped += 1
                    continue
                np.minimum(row_i, d_ik + row_k, out=row_i)
        self.counters = {"k_iterations": n, "rows_skipped": skipped}


def flat_chunks(total: int, parts: int) -> List[Tuple[int, int]]:
    """Split ``range(total)`` into at most ``parts`` contiguous, near-equal spans."""
    parts = max(1, min(parts, total))
    base, extra = divmod(total, parts)
    spans: List[Tuple[int, int]] = []
    start = 0
    for p in range(parts):
        stop = start + base + (1 if p < extra else 0)
        spans.append((start, stop))
        start = stop
    return spans


def relax_span(
    flat: npt.NDArray[np.float64],
    n: int,
    start: int,
    stop: int,
    col_k: npt.NDArray[np.float64],
    row_k: npt.NDArray[np.float64],
) -> None:
    """Relax flat cells ``start .. stop-1`` through the intermediate of ``col_k``/``row_k``.

    The span may begin and end mid-row; it is handled as a partial head row,
    a block of full rows and a partial tail row.
    """
    r0, c0 = divmod(start, n)
    r1, c1 = divmod(stop, n)
    if r0 == r1:
        seg = flat[start:stop]
        np.minimum(seg, col_k[r0] + row_k[c0:c1], out=seg)
        return
    if c0:
        seg = flat[start : (r0 + 1) * n]
        np.minimum(seg, col_k[r0] + row_k[c0:], out=seg)
        r0 += 1
    if r1 > r0:
        body = flat[r0 * n : r1 * n].reshape(r1 - r0, n)
        np.minimum(body, np.add.outer(col_k[r0:r1], row_k), out=body)
    if c1:
        seg = flat[r1 * n : stop]
        np.minimum(seg, col_k[r1] + row_k[:c1], out=seg)


class NaiveParallelKernel(BaseKernel):
    """Floyd-Warshall with a data-parallel ``(i, j)`` sweep per ``k``.

    The ``k`` loop stays sequential. For each ``k`` the flattened ``(i, j)``
    range is cut into contiguous chunks that the pool relaxes concurrently;
    the region joins before ``k + 1`` starts. Row ``k`` and column ``k`` do not
    change during iteration ``k`` (``D[k, k] == 0``), so every chunk reads them
    from a snapshot taken before the fork.
    """

    name = "naive"
    label = "Naive time"

    def _relax(self, matrix: DistanceMatrix) -> None:
        n = matrix.n
        flat = matrix.data
        grid = matrix.grid()
        spans = flat_chunks(n * n, self.cfg.threads * self.cfg.chunks_per_thread)
        with WorkerPool(n, self.cfg, self.logger) as pool:
            for k in range(n):
                row_k = grid[k].copy()
                col_k = grid[:, k].copy()
                tasks = [
                    Task(
                        writes=FlatSpan(start, stop),
                        run=lambda start=start, stop=stop: relax_span(
                            flat, n, start, stop, col_k, row_k
                        ),
                    )
                    for start, stop in spans
                ]
                pool.run_region(f"k={k}", tasks)
            self.counters = {
                "k_iterations": n,
                "chunks": len(spans),
                "regions": pool.regions,
                "tasks": pool.tasks,
            }


def kernel_class(mode: str) -> Type[BaseKernel]:
    """Return the kernel class registered under ``mode``.

    Raises:
        ConfigError: If ``mode`` is unknown.
    """
    from .blocked import BlockedParallelKernel

    classes: Dict[str, Type[BaseKernel]] = {
        SequentialKernel.name: SequentialKernel,
        NaiveParallelKernel.name: NaiveParallelKernel,
        BlockedParallelKernel.name: BlockedParallelKernel,
    }
    try:
        return classes[mode]
    except KeyError:
        raise ConfigError(f"unknown kernel mode {mode!r}; choose from {sorted(classes)}") from None


def make_kernel(
    mode: str, config: Optional[KernelConfig] = None, logger: Logger | None = None
) -> BaseKernel:
    """Instantiate the kernel registered under ``mode``."""
    return kernel_class(mode)(config, logger)


KERNEL_MODES = ("sequential", "naive", "blocked")


__all__ = [
    "BaseKernel",
    "KERNEL_MODES",
    "KernelMetrics",
    "NaiveParallelKernel",
    "SequentialKernel",
    "flat_chunks",
    "kernel_class",
    "make_kernel",
    "relax_span",
]
