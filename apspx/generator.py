"""Random directed graph generator for APSP benchmarking.

Instances are dense distance matrices with unit-weight edges:

- the diagonal is ``0``,
- exactly ``edges`` off-diagonal cells are ``1``,
- every other cell is unreachable.

Edges are drawn by rejection sampling: a uniformly random ordered pair is
accepted unless it is a self loop or was already accepted. Every accepted set
of ``edges`` distinct pairs is equally likely. The loop is meant for sparse
instances; close to ``V * (V - 1)`` edges most draws get rejected.

Edge lists can also be written to and read back from a small text format::

    n m
    u v w
    u v w
    ...
"""

from __future__ import annotations

import random
from pathlib import Path
from typing import List, Optional, Set, Tuple, Union

from .exceptions import ConfigError, GraphFormatError, InputError
from .matrix import DistanceMatrix, Edge, Pair


def max_edges(vertices: int) -> int:
    """Return the number of ordered pairs ``(u, v)`` with ``u != v``."""
    return vertices * (vertices - 1)


def validate_graph_size(vertices: int, edges: int) -> None:
    """Check a ``(vertices, edges)`` request before anything is allocated.

    Raises:
        InputError: If ``vertices`` is not positive.
        ConfigError: If ``edges`` is negative or exceeds :func:`max_edges`.
    """
    if vertices < 1:
        raise InputError(f"number of vertices must be >= 1, got {vertices}")
    if edges < 0:
        raise ConfigError(f"number of edges must be >= 0, got {edges}")
    if edges > max_edges(vertices):
        raise ConfigError(
            f"Number of edges {edges} exceeds what is possible given number of "
            f"vertices {vertices} (maximum {max_edges(vertices)})"
        )


def sample_edges(vertices: int, edges: int, rng: random.Random) -> List[Pair]:
    """Draw ``edges`` distinct ordered pairs without self loops.

    Args:
        vertices: Number of vertices ``V``.
        edges: Number of pairs to accept.
        rng: Source of randomness.

    Returns:
        Accepted pairs in the order they were drawn.
    """
    validate_graph_size(vertices, edges)
    seen: Set[Pair] = set()
    accepted: List[Pair] = []
    while len(accepted) < edges:
        u = rng.randrange(vertices)
        v = rng.randrange(vertices)
        if u == v or (u, v) in seen:
            continue
        seen.add((u, v))
        accepted.append((u, v))
    return accepted


class GraphGenerator:
    """Seeded factory for benchmark distance matrices."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self.seed = seed
        self.rng = random.Random(seed)

    def sample_edges(self, vertices: int, edges: int) -> List[Pair]:
        """Draw an edge set from this generator's random stream."""
        return sample_edges(vertices, edges, self.rng)

    def generate(self, vertices: int, edges: int) -> DistanceMatrix:
        """Return a ``vertices x vertices`` matrix with ``edges`` unit edges."""
        validate_graph_size(vertices, edges)
        matrix = DistanceMatrix.empty(vertices)
        grid = matrix.grid()
        for u, v in self.sample_edges(vertices, edges):
            grid[u, v] = 1.0
        return matrix


def generate_matrix(vertices: int, edges: int, seed: Optional[int] = None) -> DistanceMatrix:
    """Shortcut for ``GraphGenerator(seed).generate(vertices, edges)``."""
    return GraphGenerator(seed).generate(vertices, edges)


def save_edge_list_txt(matrix: DistanceMatrix, path: Union[str, Path]) -> int:
    """Write the finite off-diagonal cells of ``matrix`` as an edge list.

    Returns:
        Number of edges written.
    """
    edges = matrix.finite_edges()
    with open(path, "w", encoding="utf-8") as f:
        f.write(f"{matrix.n} {len(edges)}\n")
        for u, v, w in edges:
            weight = int(w) if w.is_integer() else w
            f.write(f"{u} {v} {weight}\n")
    return len(edges)


def load_edge_list_txt(path: Union[str, Path]) -> Tuple[DistanceMatrix, int]:
    """Load the format produced by :func:`save_edge_list_txt`.

    Returns:
        The distance matrix and the edge count from the header.

    Raises:
        GraphFormatError: If the header or an edge line is malformed, or the
            number of edge lines does not match the header.
    """
    p = Path(path)
    if not p.exists():
        raise InputError(f"graph file not found: {path}")
    with p.open("r", encoding="utf-8") as f:
        header = f.readline().split()
        if len(header) != 2:
            raise GraphFormatError(f"{path}: expected header 'n m', got {header!r}")
        try:
            n, m = int(header[0]), int(header[1])
        except ValueError as exc:
            raise GraphFormatError(f"{path}: non-integer header {header!r}") from exc
        edges: List[Edge] = []
        for lineno, line in enumerate(f, start=2):
            if not line.strip() or line.startswith("#"):
                continue
            parts = line.split()
            if len(parts) != 3:
                raise GraphFormatError(f"{path}:{lineno}: expected 'u v w', got {line.strip()!r}")
            try:
                edges.append((int(parts[0]), int(parts[1]), float(parts[2])))
            except ValueError as exc:
                raise GraphFormatError(f"{path}:{lineno}: malformed edge {line.strip()!r}") from exc
    if len(edges) != m:
        raise GraphFormatError(f"{path}: header announces {m} edges, found {len(edges)}")
    try:
        matrix = DistanceMatrix.from_edges(n, edges)
    except InputError as exc:
        raise GraphFormatError(f"{path}: {exc}") from exc
    return matrix, m


__all__ = [
    "GraphGenerator",
    "generate_matrix",
    "load_edge_list_txt",
    "max_edges",
    "sample_edges",
    "save_edge_list_txt",
    "validate_graph_size",
]
