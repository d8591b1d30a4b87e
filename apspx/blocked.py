"""Cache-blocked, three-phase parallel Floyd-Warshall.

The ``V x V`` matrix is split into a ``B x B`` grid of ``L x L`` blocks. For
each block index ``K`` three regions run strictly in order, each joined before
the next starts:

1. dependent: diagonal block ``(K, K)`` is closed against itself;
2. partially dependent: blocks ``(K, j)`` and ``(i, K)`` are relaxed through
   the closed diagonal block;
3. independent: every other block ``(i, j)`` is relaxed through ``(i, K)``
   and ``(K, j)``.

Every block update reads private copies of its target and operands from the
shared matrix and writes back only its own target block. A block ``(bi, bj)``
is always relaxed through the row operand ``(bi, K)``, which shares the
target's rows, and the column operand ``(K, bj)``, which shares its columns.
"""

from __future__ import annotations

import time
from typing import List, Tuple

import numpy as np
import numpy.typing as npt

from .exceptions import AlgorithmError, ConfigError
from .kernels import BaseKernel
from .matrix import DistanceMatrix
from .parallel import Rect, Task, WorkerPool

Grid = npt.NDArray[np.float64]


def validate_block_length(vertices: int, block_length: int) -> int:
    """Check that ``block_length`` tiles a ``vertices``-wide matrix.

    Returns:
        The number of blocks ``B`` along one side.

    Raises:
        ConfigError: If the length is not positive, exceeds ``vertices`` or
            does not divide it.
    """
    if block_length < 1:
        raise ConfigError(f"block length must be >= 1, got {block_length}")
    if block_length > vertices:
        raise ConfigError(
            f"Block length {block_length} cannot be greater than number of vertices {vertices}"
        )
    if vertices % block_length != 0:
        raise ConfigError(
            f"Vertices: {vertices} must be divisible by block length: {block_length}"
        )
    return vertices // block_length


def block_bounds(block_row: int, block_col: int, length: int) -> Rect:
    """Return the cells covered by block ``(block_row, block_col)``."""
    return Rect(
        block_row * length,
        (block_row + 1) * length,
        block_col * length,
        (block_col + 1) * length,
    )


def block_slices(block_row: int, block_col: int, length: int) -> Tuple[slice, slice]:
    """Return the ``(rows, cols)`` slices selecting a block from the 2-D grid."""
    r = block_row * length
    c = block_col * length
    return slice(r, r + length), slice(c, c + length)


def global_index(
    block_row: int, block_col: int, local_row: int, local_col: int, length: int, n: int
) -> int:
    """Map local cell ``(local_row, local_col)`` of a block to its flat index."""
    if not (0 <= local_row < length and 0 <= local_col < length):
        raise AlgorithmError(
            f"local cell ({local_row}, {local_col}) outside a block of length {length}"
        )
    row = block_row * length + local_row
    col = block_col * length + local_col
    if not (0 <= row < n and 0 <= col < n):
        raise AlgorithmError(f"block ({block_row}, {block_col}) outside a {n}x{n} matrix")
    return row * n + col


def relax_block(target: Grid, row_operand: Grid, col_operand: Grid) -> None:
    """``target[x, y] = min(target[x, y], row_operand[x, k] + col_operand[k, y])`` for each ``k``.

    ``k`` advances sequentially. When the operands are ``target`` itself,
    step ``k`` sees the results of steps ``0 .. k-1``.
    """
    for k in range(target.shape[0]):
        np.minimum(target, np.add.outer(row_operand[:, k], col_operand[k, :]), out=target)


def update_block(grid: Grid, block_row: int, block_col: int, pivot: int, length: int) -> None:
    """Relax block ``(block_row, block_col)`` for pivot block ``pivot`` and write it back."""
    rows, cols = block_slices(block_row, block_col, length)
    target = grid[rows, cols].copy()
    if block_row == pivot and block_col == pivot:
        # Dependent phase: the diagonal block is its own row and column operand.
        relax_block(target, target, target)
    else:
        row_operand = grid[block_slices(block_row, pivot, length)].copy()
        col_operand = grid[block_slices(pivot, block_col, length)].copy()
        relax_block(target, row_operand, col_operand)
    grid[rows, cols] = target


class BlockedParallelKernel(BaseKernel):
    """Three-phase blocked Floyd-Warshall over ``L x L`` tiles.

    ``KernelConfig.block_length`` selects ``L``. The result equals
    :class:`~apspx.kernels.SequentialKernel`'s for any valid ``L``.
    """

    name = "blocked"
    label = "Block time"

    def check(self, matrix: DistanceMatrix) -> None:
        validate_block_length(matrix.n, self.cfg.block_length)

    def _block_task(self, grid: Grid, block_row: int, block_col: int, pivot: int) -> Task:
        length = self.cfg.block_length
        return Task(
            writes=block_bounds(block_row, block_col, length),
            run=lambda: update_block(grid, block_row, block_col, pivot, length),
        )

    def _relax(self, matrix: DistanceMatrix) -> None:
        n = matrix.n
        length = self.cfg.block_length
        blocks = validate_block_length(n, length)
        grid = matrix.grid()
        phase_ns = {"dependent": 0, "partial": 0, "independent": 0}
        with WorkerPool(n, self.cfg, self.logger) as pool:
            for pivot in range(blocks):
                t0 = time.perf_counter_ns()
                pool.run_region(f"K={pivot} dependent", [self._block_task(grid, pivot, pivot, pivot)])
                t1 = time.perf_counter_ns()

                partial: List[Task] = []
                for j in range(blocks):
                    if j != pivot:
                        partial.append(self._block_task(grid, pivot, j, pivot))
                for i in range(blocks):
                    if i != pivot:
                        partial.append(self._block_task(grid, i, pivot, pivot))
                pool.run_region(f"K={pivot} partial", partial)
                t2 = time.perf_counter_ns()

                independent = [
                    self._block_task(grid, i, j, pivot)
                    for i in range(blocks)
                    if i != pivot
                    for j in range(blocks)
                    if j != pivot
                ]
                pool.run_region(f"K={pivot} independent", independent)
                t3 = time.perf_counter_ns()

                phase_ns["dependent"] += t1 - t0
                phase_ns["partial"] += t2 - t1
                phase_ns["independent"] += t3 - t2
            self.counters = {
                "blocks_per_side": blocks,
                "regions": pool.regions,
                "tasks": pool.tasks,
            }
        self.phase_ns = phase_ns


__all__ = [
    "BlockedParallelKernel",
    "block_bounds",
    "block_slices",
    "global_index",
    "relax_block",
    "update_block",
    "validate_block_length",
]
