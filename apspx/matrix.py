"""Dense distance matrix shared by every kernel."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Tuple, Union

import numpy as np
import numpy.typing as npt

from .exceptions import InputError

Vertex = int
Float = float
Edge = Tuple[Vertex, Vertex, Float]
Pair = Tuple[Vertex, Vertex]

#: Distance of a pair with no known path. IEEE infinity saturates under
#: addition, so relaxing through it can never overflow or wrap.
UNREACHABLE: Float = math.inf

#: Token printed in place of :data:`UNREACHABLE`.
UNREACHABLE_TOKEN = "N"


@dataclass(eq=False)
class DistanceMatrix:
    """Square ``n x n`` distance matrix over one flat row-major buffer.

    Cell ``(i, j)`` lives at ``data[i * n + j]``. The diagonal is ``0``,
    directly reachable pairs hold a finite non-negative weight and every other
    pair holds :data:`UNREACHABLE`. Kernels mutate ``data`` in place.

    Attributes:
        n: Number of vertices.
        data: Flat ``float64`` buffer of length ``n * n``.
    """

    n: int
    data: npt.NDArray[np.float64] = field(default=None, repr=False)  # type: ignore[assignment]

    def __post_init__(self) -> None:
        """Validate the vertex count and allocate or check the buffer."""
        if isinstance(self.n, bool) or not isinstance(self.n, (int, np.integer)) or self.n <= 0:
            raise InputError("DistanceMatrix.n must be a positive integer.")
        self.n = int(self.n)
        if self.data is None:
            self.data = np.full(self.n * self.n, UNREACHABLE, dtype=np.float64)
            self.data[:: self.n + 1] = 0.0
            return
        if not isinstance(self.data, np.ndarray) or self.data.dtype != np.float64:
            raise InputError("DistanceMatrix.data must be a float64 numpy array.")
        if self.data.shape != (self.n * self.n,) or not self.data.flags.c_contiguous:
            raise InputError(
                f"DistanceMatrix.data must be a contiguous flat array of length {self.n * self.n}."
            )

    # ---------- construction ----------------------------------------------

    @classmethod
    def empty(cls, n: int) -> "DistanceMatrix":
        """Return a matrix with a zero diagonal and no edges."""
        return cls(n)

    @classmethod
    def from_edges(
        cls, n: int, edges: Iterable[Union[Pair, Edge, Sequence[float]]]
    ) -> "DistanceMatrix":
        """Create a matrix from ``(u, v)`` unit edges or ``(u, v, w)`` triples.

        Parallel edges keep the smallest weight. Self loops are ignored since
        they can never beat the zero diagonal.

        Raises:
            InputError: If a vertex id is out of range or a weight is negative,
                NaN or infinite.
        """
        mat = cls(n)
        grid = mat.grid()
        for edge in edges:
            if len(edge) == 2:
                u, v = edge  # type: ignore[misc]
                w = 1.0
            else:
                u, v, w = edge  # type: ignore[misc]
            u, v, w = int(u), int(v), float(w)
            if not (0 <= u < n and 0 <= v < n):
                raise InputError(f"edge ({u}, {v}) has a vertex outside [0, {n}).")
            if not math.isfinite(w) or w < 0:
                raise InputError(f"invalid weight {w} on edge ({u}, {v})")
            if u == v:
                continue
            if w < grid[u, v]:
                grid[u, v] = w
        return mat

    @classmethod
    def from_dense(cls, values: npt.ArrayLike) -> "DistanceMatrix":
        """Copy a square 2-D array into a new matrix.

        ``inf`` marks unreachable pairs. The diagonal must be zero and every
        other value non-negative.
        """
        arr = np.array(values, dtype=np.float64)
        if arr.ndim != 2 or arr.shape[0] != arr.shape[1] or arr.shape[0] == 0:
            raise InputError(f"expected a non-empty square 2-D array, got shape {arr.shape}")
        if np.isnan(arr).any():
            raise InputError("distance matrix must not contain NaN")
        if (arr < 0).any():
            raise InputError("distance matrix must not contain negative weights")
        if (np.diagonal(arr) != 0).any():
            raise InputError("distance matrix diagonal must be zero")
        n = arr.shape[0]
        return cls(n, np.ascontiguousarray(arr).reshape(n * n))

    # ---------- access ----------------------------------------------------

    def index(self, i: Vertex, j: Vertex) -> int:
        """Return the flat buffer index of cell ``(i, j)``."""
        if not (0 <= i < self.n and 0 <= j < self.n):
            raise IndexError(f"cell ({i}, {j}) outside a {self.n}x{self.n} matrix")
        return i * self.n + j

    def __getitem__(self, cell: Pair) -> Float:
        i, j = cell
        return float(self.data[self.index(i, j)])

    def __setitem__(self, cell: Pair, value: Float) -> None:
        i, j = cell
        self.data[self.index(i, j)] = value

    def grid(self) -> npt.NDArray[np.float64]:
        """Return a 2-D view sharing storage with :attr:`data`."""
        return self.data.reshape(self.n, self.n)

    def copy(self) -> "DistanceMatrix":
        """Return an independent copy (used by callers, never by kernels)."""
        return DistanceMatrix(self.n, self.data.copy())

    def equals(self, other: "DistanceMatrix") -> bool:
        """Return ``True`` if both matrices hold bit-identical values."""
        return self.n == other.n and self.data.tobytes() == other.data.tobytes()

    @property
    def nbytes(self) -> int:
        """Memory footprint of the backing buffer in bytes."""
        return int(self.data.nbytes)

    def finite_edges(self) -> List[Edge]:
        """Return off-diagonal finite cells as ``(u, v, w)`` triples."""
        grid = self.grid()
        mask = np.isfinite(grid)
        np.fill_diagonal(mask, False)
        rows, cols = np.nonzero(mask)
        return [(int(u), int(v), float(grid[u, v])) for u, v in zip(rows, cols)]

    # ---------- output ----------------------------------------------------

    def render(self, token: str = UNREACHABLE_TOKEN) -> str:
        """Render the matrix row by row with ``token`` for unreachable cells."""
        return "\n".join(
            " ".join(_format_cell(value, token) for value in row) for row in self.grid()
        )


def _format_cell(value: float, token: str) -> str:
    if math.isinf(value):
        return token
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


__all__ = [
    "DistanceMatrix",
    "Edge",
    "Pair",
    "UNREACHABLE",
    "UNREACHABLE_TOKEN",
]
