"""Tests for the three-phase blocked kernel and its index helpers."""

import numpy as np
import pytest

from apspx.blocked import (
    BlockedParallelKernel,
    block_bounds,
    block_slices,
    global_index,
    relax_block,
    update_block,
    validate_block_length,
)
from apspx.exceptions import AlgorithmError, ConfigError
from apspx.generator import generate_matrix
from apspx.kernels import SequentialKernel
from apspx.matrix import DistanceMatrix
from apspx.parallel import KernelConfig, Rect


class TestBlockLengthValidation:
    @pytest.mark.parametrize("vertices,length,blocks", [(1, 1, 1), (10, 5, 2), (12, 3, 4), (12, 12, 1)])
    def test_valid(self, vertices, length, blocks) -> None:
        assert validate_block_length(vertices, length) == blocks

    def test_not_divisible(self) -> None:
        with pytest.raises(ConfigError, match="divisible"):
            validate_block_length(10, 3)

    def test_longer_than_matrix(self) -> None:
        with pytest.raises(ConfigError, match="greater than"):
            validate_block_length(4, 8)

    def test_non_positive(self) -> None:
        with pytest.raises(ConfigError):
            validate_block_length(4, 0)

    def test_kernel_rejects_before_touching_matrix(self) -> None:
        matrix = generate_matrix(10, 20, seed=5)
        before = matrix.copy()
        kernel = BlockedParallelKernel(KernelConfig(block_length=3))
        with pytest.raises(ConfigError):
            kernel.run(matrix)
        assert matrix.equals(before)


class TestIndexTranslation:
    def test_known_cell(self) -> None:
        # Block (1, 2) of length 3 starts at global cell (3, 6).
        assert global_index(1, 2, 0, 1, 3, 9) == 3 * 9 + 7
        assert global_index(2, 0, 2, 2, 3, 9) == 8 * 9 + 2

    @pytest.mark.parametrize("n,length", [(6, 2), (6, 3), (8, 4), (5, 1), (7, 7)])
    def test_bijective_over_all_blocks(self, n, length) -> None:
        blocks = n // length
        seen = [
            global_index(bi, bj, r, c, length, n)
            for bi in range(blocks)
            for bj in range(blocks)
            for r in range(length)
            for c in range(length)
        ]
        assert sorted(seen) == list(range(n * n))

    def test_matches_slices(self) -> None:
        n, length = 8, 4
        grid = np.arange(n * n, dtype=np.float64).reshape(n, n)
        flat = grid.reshape(-1)
        block = grid[block_slices(1, 0, length)]
        for r in range(length):
            for c in range(length):
                assert block[r, c] == flat[global_index(1, 0, r, c, length, n)]

    def test_local_cell_out_of_block(self) -> None:
        with pytest.raises(AlgorithmError):
            global_index(0, 0, 3, 0, 3, 9)

    def test_block_out_of_matrix(self) -> None:
        with pytest.raises(AlgorithmError):
            global_index(3, 0, 0, 0, 3, 9)

    def test_block_bounds(self) -> None:
        assert block_bounds(1, 2, 3) == Rect(3, 6, 6, 9)


class TestBlockRelaxation:
    def test_self_dependent_block_is_closed(self) -> None:
        matrix = generate_matrix(6, 9, seed=4)
        expected = matrix.copy()
        SequentialKernel().run(expected)
        block = matrix.grid().copy()
        relax_block(block, block, block)
        assert np.array_equal(block, expected.grid())

    def test_separate_operands_are_one_min_plus_step_each(self) -> None:
        inf = np.inf
        target = np.array([[5.0, inf], [inf, 5.0]])
        row_operand = np.array([[1.0, 2.0], [inf, 0.0]])
        col_operand = np.array([[0.0, 1.0], [1.0, inf]])
        relax_block(target, row_operand, col_operand)
        # target[0, 0] = min(5, 1 + 0, 2 + 1) ; target[0, 1] = min(inf, 1 + 1, 2 + inf)
        assert target.tolist() == [[1.0, 2.0], [1.0, 5.0]]

    def test_update_block_writes_only_its_target(self) -> None:
        matrix = generate_matrix(8, 20, seed=9)
        grid = matrix.grid()
        before = grid.copy()
        update_block(grid, 1, 0, 0, 4)
        mask = np.ones((8, 8), dtype=bool)
        mask[4:8, 0:4] = False
        assert np.array_equal(grid[mask], before[mask])


class TestPhaseOrder:
    def test_regions_follow_dependency_order(self, recording_logger) -> None:
        kernel = BlockedParallelKernel(KernelConfig(threads=2, block_length=2), recording_logger)
        kernel.run(generate_matrix(6, 10, seed=1))
        joined = [f["region"] for lvl, e, f in recording_logger.events if e == "region_joined"]
        expected = []
        for k in range(3):
            expected += [f"K={k} dependent", f"K={k} partial", f"K={k} independent"]
        assert joined == expected

    def test_task_counts(self) -> None:
        kernel = BlockedParallelKernel(KernelConfig(threads=2, block_length=3))
        metrics = kernel.run(generate_matrix(12, 30, seed=2))
        blocks = 4
        assert metrics.counters["blocks_per_side"] == blocks
        assert metrics.counters["regions"] == 3 * blocks
        # Per pivot: one diagonal, 2 * (B - 1) partial and (B - 1)^2 independent tasks.
        assert metrics.counters["tasks"] == blocks * (1 + 2 * (blocks - 1) + (blocks - 1) ** 2)
        assert set(metrics.phase_ns) == {"dependent", "partial", "independent"}
        assert metrics.label == "Block time"
        assert metrics.block_length == 3

    def test_whole_matrix_block_is_sequential_closure(self) -> None:
        matrix = generate_matrix(9, 25, seed=8)
        expected = matrix.copy()
        SequentialKernel().run(expected)
        metrics = BlockedParallelKernel(KernelConfig(threads=4, block_length=9)).run(matrix)
        assert matrix.equals(expected)
        assert metrics.counters["tasks"] == 1

    def test_weighted_chain_across_blocks(self) -> None:
        # Shortest 0 -> 5 path hops through every block and back: 0 -> 4 -> 1 -> 5.
        edges = [(0, 4, 1), (4, 1, 1), (1, 5, 1), (0, 5, 10), (5, 2, 2), (2, 3, 2)]
        matrix = DistanceMatrix.from_edges(6, edges)
        BlockedParallelKernel(KernelConfig(threads=3, block_length=2, check_writes=True)).run(matrix)
        assert matrix[0, 5] == 3
        assert matrix[0, 3] == 7
        assert matrix[4, 3] == 6
        assert matrix[3, 0] == np.inf
