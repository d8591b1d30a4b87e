"""Tests for the converged-matrix invariant checks."""

import math

import pytest

from apspx.exceptions import AlgorithmError
from apspx.matrix import DistanceMatrix
from apspx.validation import (
    assert_converged,
    diagonal_violations,
    reachability_violations,
    transitive_closure,
    triangle_violations,
    verify_converged,
)
from conftest import solve


class TestChecks:
    def test_converged_chain_passes(self, chain_matrix) -> None:
        out = solve("sequential", chain_matrix)
        edges = [(0, 1), (1, 2), (2, 3)]
        assert verify_converged(out, edges) == []
        assert_converged(out, edges)

    def test_unconverged_chain_breaks_triangle(self, chain_matrix) -> None:
        violations = triangle_violations(chain_matrix)
        # 0 -> 2 is unreachable before relaxation although 0 -> 1 -> 2 exists.
        assert (0, 2, 1) in violations

    def test_limit(self) -> None:
        inf = math.inf
        m = DistanceMatrix.from_dense([[0, 1, inf, inf], [inf, 0, 1, inf], [inf, inf, 0, 1], [1, inf, inf, 0]])
        assert len(triangle_violations(m, limit=2)) == 2

    def test_diagonal(self) -> None:
        m = DistanceMatrix.empty(3)
        m[1, 1] = 2.0
        assert diagonal_violations(m) == [1]

    def test_transitive_closure(self) -> None:
        reach = transitive_closure(3, [(0, 1), (1, 2)])
        assert reach.tolist() == [[True, True, True], [False, True, True], [False, False, True]]

    def test_reachability_mismatch(self, chain_matrix) -> None:
        out = solve("sequential", chain_matrix)
        assert reachability_violations(out, [(0, 1), (1, 2)]) == [(0, 3), (1, 3), (2, 3)]

    def test_assert_converged_raises(self, chain_matrix) -> None:
        with pytest.raises(AlgorithmError, match="triangle"):
            assert_converged(chain_matrix)
