"""Invariant checks for converged distance matrices."""

from __future__ import annotations

from collections import deque
from typing import Iterable, List, Optional, Sequence

import numpy as np
import numpy.typing as npt

from .exceptions import AlgorithmError
from .matrix import DistanceMatrix


def diagonal_violations(matrix: DistanceMatrix) -> List[int]:
    """Return vertices whose distance to themselves is not ``0``."""
    diag = np.diagonal(matrix.grid())
    return [int(i) for i in np.nonzero(diag != 0)[0]]


def triangle_violations(matrix: DistanceMatrix, limit: int = 10) -> List[tuple[int, int, int]]:
    """Return up to ``limit`` triples ``(i, j, k)`` with ``D[i,j] > D[i,k] + D[k,j]``.

    Unreachable operands add up to ``inf`` and never produce a violation.
    """
    grid = matrix.grid()
    found: List[tuple[int, int, int]] = []
    for k in range(matrix.n):
        bad = grid > np.add.outer(grid[:, k], grid[k, :])
        if bad.any():
            for i, j in zip(*np.nonzero(bad)):
                found.append((int(i), int(j), k))
                if len(found) >= limit:
                    return found
    return found


def transitive_closure(n: int, edges: Iterable[Sequence[int]]) -> npt.NDArray[np.bool_]:
    """Return ``reach[i, j]``: ``j`` can be reached from ``i`` (``i`` reaches itself)."""
    adj: List[List[int]] = [[] for _ in range(n)]
    for edge in edges:
        adj[int(edge[0])].append(int(edge[1]))
    reach = np.zeros((n, n), dtype=bool)
    for s in range(n):
        reach[s, s] = True
        queue = deque([s])
        while queue:
            u = queue.popleft()
            for v in adj[u]:
                if not reach[s, v]:
                    reach[s, v] = True
                    queue.append(v)
    return reach


def reachability_violations(
    matrix: DistanceMatrix, edges: Iterable[Sequence[int]], limit: int = 10
) -> List[tuple[int, int]]:
    """Return pairs whose finiteness disagrees with the closure of ``edges``."""
    reach = transitive_closure(matrix.n, edges)
    bad = np.isfinite(matrix.grid()) != reach
    return [(int(i), int(j)) for i, j in zip(*np.nonzero(bad))][:limit]


def verify_converged(
    matrix: DistanceMatrix, edges: Optional[Iterable[Sequence[int]]] = None
) -> List[str]:
    """Run all checks and return human-readable violation messages."""
    problems: List[str] = []
    diag = diagonal_violations(matrix)
    if diag:
        problems.append(f"non-zero diagonal at vertices {diag[:10]}")
    tri = triangle_violations(matrix)
    if tri:
        problems.append(f"triangle inequality violated at (i, j, k) {tri}")
    if edges is not None:
        unreach = reachability_violations(matrix, edges)
        if unreach:
            problems.append(f"finite distance disagrees with reachability at {unreach}")
    return problems


def assert_converged(
    matrix: DistanceMatrix, edges: Optional[Iterable[Sequence[int]]] = None
) -> None:
    """Raise :class:`AlgorithmError` if :func:`verify_converged` finds anything."""
    problems = verify_converged(matrix, edges)
    if problems:
        raise AlgorithmError("; ".join(problems))


__all__ = [
    "assert_converged",
    "diagonal_violations",
    "reachability_violations",
    "transitive_closure",
    "triangle_violations",
    "verify_converged",
]
