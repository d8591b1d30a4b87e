"""Plotting helpers for distance matrices and generated edge sets.

Example usage:

```
python -m apspx.visualize graph.txt --out graph.png --max-edges 200
python -m apspx.visualize graph.txt --out dist.png --heatmap
```
"""

from __future__ import annotations

import argparse
import random
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

import matplotlib.pyplot as plt
import networkx as nx
import numpy as np

from .generator import load_edge_list_txt
from .matrix import DistanceMatrix, Edge


def downsample_edges(edges: Iterable[Edge], max_edges: int, seed: int = 0) -> List[Edge]:
    """Randomly sample edges if there are too many to draw."""
    edges = list(edges)
    if len(edges) <= max_edges:
        return edges
    rng = random.Random(seed)
    return rng.sample(edges, max_edges)


def to_networkx(n: int, edges: Iterable[Sequence[float]]) -> nx.DiGraph:
    """Build a :class:`networkx.DiGraph` on vertices ``0 .. n-1``."""
    G = nx.DiGraph()
    G.add_nodes_from(range(n))
    for edge in edges:
        w = float(edge[2]) if len(edge) > 2 else 1.0
        G.add_edge(int(edge[0]), int(edge[1]), weight=w)
    return G


def plot_distance_heatmap(
    matrix: DistanceMatrix,
    path: Union[str, Path],
    *,
    title: str = "All-pairs shortest distances",
) -> None:
    """Save a heatmap of ``matrix``; unreachable cells are left blank."""
    grid = matrix.grid()
    masked = np.ma.masked_invalid(grid)
    fig, ax = plt.subplots(figsize=(8, 7))
    image = ax.imshow(masked, cmap="viridis", interpolation="nearest")
    fig.colorbar(image, ax=ax, label="distance")
    ax.set_xlabel("destination j")
    ax.set_ylabel("source i")
    ax.set_title(title)
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)


def plot_graph(
    matrix: DistanceMatrix,
    path: Union[str, Path],
    *,
    layout: str = "spring",
    max_edges: int = 300,
    show_weights: bool = False,
    node_size: int = 300,
) -> None:
    """Draw the finite off-diagonal cells of ``matrix`` as a directed graph."""
    edges = downsample_edges(matrix.finite_edges(), max_edges)
    G = to_networkx(matrix.n, edges)

    if layout == "spring":
        pos = nx.spring_layout(G, seed=42)
    elif layout == "kamada_kawai":
        pos = nx.kamada_kawai_layout(G)
    elif layout == "shell":
        pos = nx.shell_layout(G)
    else:
        raise ValueError(f"Unknown layout: {layout}")

    fig, ax = plt.subplots(figsize=(12, 10))
    nx.draw_networkx_nodes(G, pos, ax=ax, node_color="tab:blue", node_size=node_size, alpha=0.9)
    nx.draw_networkx_edges(G, pos, ax=ax, arrowstyle="->", arrowsize=12, width=1.2, alpha=0.6)
    nx.draw_networkx_labels(G, pos, ax=ax, font_size=8)
    if show_weights:
        labels = {(u, v): f"{w:g}" for u, v, w in edges}
        nx.draw_networkx_edge_labels(G, pos, ax=ax, edge_labels=labels, font_size=7)
    ax.set_title(f"Directed graph ({matrix.n} vertices, {len(edges)} edges shown)")
    ax.axis("off")
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)


def main(argv: Optional[List[str]] = None) -> None:
    """Plot an edge-list file from the command line."""
    parser = argparse.ArgumentParser(description="Plot an edge-list file")
    parser.add_argument("path", help="Path to an edge-list file")
    parser.add_argument("--out", required=True, help="Image file to write")
    parser.add_argument("--heatmap", action="store_true", help="Plot the input matrix as a heatmap")
    parser.add_argument("--max-edges", type=int, default=300,
                        help="Maximum edges to display (sampling if larger)")
    parser.add_argument("--layout", choices=["spring", "kamada_kawai", "shell"], default="spring")
    parser.add_argument("--show-weights", action="store_true",
                        help="Render edge weights (recommended only for very small graphs)")
    args = parser.parse_args(argv)

    matrix, _ = load_edge_list_txt(args.path)
    if args.heatmap:
        plot_distance_heatmap(matrix, args.out, title=str(args.path))
    else:
        plot_graph(
            matrix,
            args.out,
            layout=args.layout,
            max_edges=args.max_edges,
            show_weights=args.show_weights,
        )


if __name__ == "__main__":
    main()
