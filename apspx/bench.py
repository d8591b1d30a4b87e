"""Scaling benchmarks for the APSP kernels.

Run this module as a script to time the kernels across graph sizes and thread
counts. Every run is checked against the sequential kernel on a copy of the
same input.

Example:
```bash
python -m apspx.bench --modes naive blocked --sizes 256,1024 512,2048 \
    --threads 1 2 4 8 --block-length 64 --trials 3 --out-csv out.csv
python -m apspx.bench --scaling weak --sizes 128,512 --threads 1 2 4 8
```

Strong scaling keeps each size fixed while the thread count grows. Weak
scaling multiplies the vertex count by the thread count (edges grow in
proportion), rounded up to a multiple of the block length.
"""

from __future__ import annotations

import argparse
import csv
import statistics
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple

import numpy as np

from .generator import generate_matrix, max_edges
from .kernels import KERNEL_MODES, KernelMetrics, SequentialKernel, make_kernel
from .parallel import KernelConfig, clamp_threads


@dataclass
class BenchResult:
    """Result of a single benchmarking run."""

    metrics: KernelMetrics
    edges: int
    sequential_ms: float
    max_abs_err: float


def scaled_size(vertices: int, edges: int, threads: int, block_length: int) -> Tuple[int, int]:
    """Return the weak-scaling ``(vertices, edges)`` for ``threads`` workers."""
    n = vertices * threads
    n = -(-n // block_length) * block_length
    m = min(edges * threads, max_edges(n))
    return n, m


def run_once(
    mode: str,
    vertices: int,
    edges: int,
    threads: int = 1,
    block_length: int = 1,
    seed: int = 0,
) -> BenchResult:
    """Run one kernel once and compare it with the sequential kernel.

    Args:
        mode: Kernel mode (``"sequential"``, ``"naive"`` or ``"blocked"``).
        vertices: Number of vertices.
        edges: Number of unit edges.
        threads: Worker threads, clamped to the hardware maximum.
        block_length: Block side length for the blocked kernel.
        seed: Seed for the graph generator.

    Returns:
        Kernel metrics plus the reference time and maximum absolute error.
    """
    matrix = generate_matrix(vertices, edges, seed=seed)
    reference = matrix.copy()

    cfg = KernelConfig(threads=clamp_threads(threads), block_length=block_length)
    metrics = make_kernel(mode, cfg).run(matrix)
    ref_metrics = SequentialKernel().run(reference)

    both_inf = np.isinf(matrix.data) & np.isinf(reference.data)
    with np.errstate(invalid="ignore"):
        diff = np.abs(matrix.data - reference.data)
    diff[both_inf] = 0.0
    max_err = float(diff.max())
    return BenchResult(
        metrics=metrics,
        edges=edges,
        sequential_ms=ref_metrics.wall_ms,
        max_abs_err=max_err,
    )


def _p95(values: List[float]) -> float:
    if len(values) == 1:
        return values[0]
    return statistics.quantiles(values, n=100, method="inclusive")[94]


def main(argv: List[str] | None = None) -> None:
    """Run benchmarking trials and optionally record results.

    Args:
        argv: Optional argument list for testing.
    """
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawTextHelpFormatter)
    parser.add_argument("--modes", nargs="+", choices=KERNEL_MODES, default=["naive", "blocked"])
    parser.add_argument(
        "--sizes",
        nargs="+",
        default=["64,256", "128,512"],
        help="Size pairs as vertices,edges (e.g. 1000,5000). Defaults to a small demo.",
    )
    parser.add_argument("--threads", nargs="+", type=int, default=[1, 2], help="Thread counts")
    parser.add_argument("--block-length", type=int, default=16, help="Block length (blocked mode)")
    parser.add_argument("--scaling", choices=["strong", "weak"], default="strong")
    parser.add_argument("--trials", type=int, default=1, help="Number of trials per configuration")
    parser.add_argument("--seed-base", type=int, default=0, help="Base seed for random graphs")
    parser.add_argument("--out-csv", type=Path, help="Optional path to write per-trial CSV data")
    args = parser.parse_args(argv)

    sizes: List[Tuple[int, int]] = []
    for spec in args.sizes:
        try:
            n_str, m_str = spec.split(",")
            sizes.append((int(n_str), int(m_str)))
        except ValueError:  # pragma: no cover - argparse handles
            parser.error(f"invalid size specification '{spec}'")

    rows: List[List[object]] = []
    aggregates: Dict[Tuple[str, int, int, int], Tuple[List[float], List[float], List[float]]] = {}

    for vertices, edges in sizes:
        for threads in args.threads:
            if args.scaling == "weak":
                n, m = scaled_size(vertices, edges, threads, args.block_length)
            else:
                n, m = vertices, edges
            for mode in args.modes:
                block_length = args.block_length if mode == "blocked" else 1
                k_times: List[float] = []
                s_times: List[float] = []
                errors: List[float] = []
                for trial in range(args.trials):
                    res = run_once(
                        mode,
                        n,
                        m,
                        threads=threads,
                        block_length=block_length,
                        seed=args.seed_base + trial,
                    )
                    mtx = res.metrics
                    rows.append(
                        [
                            mode,
                            mtx.n,
                            res.edges,
                            mtx.threads,
                            mtx.block_length,
                            trial,
                            f"{mtx.wall_ms:.6f}",
                            f"{res.sequential_ms:.6f}",
                            res.max_abs_err,
                        ]
                    )
                    k_times.append(mtx.wall_ms)
                    s_times.append(res.sequential_ms)
                    errors.append(res.max_abs_err)
                aggregates[(mode, n, m, threads)] = (k_times, s_times, errors)

    if args.out_csv:
        with args.out_csv.open("w", newline="") as fh:
            writer = csv.writer(fh)
            writer.writerow(
                [
                    "mode",
                    "n",
                    "m",
                    "threads",
                    "block_length",
                    "trial",
                    "kernel_ms",
                    "sequential_ms",
                    "max_abs_err",
                ]
            )
            writer.writerows(rows)

    header = (
        f"{'mode':>10} {'n':>6} {'m':>8} {'thr':>4}"
        f" {'kern_med':>11} {'kern_p95':>11} {'seq_med':>11} {'speedup':>8} {'max_err':>8}"
    )
    print(header)
    for (mode, n, m, threads), (k_times, s_times, errors) in aggregates.items():
        k_med = statistics.median(k_times)
        s_med = statistics.median(s_times)
        speedup = s_med / k_med if k_med > 0 else float("inf")
        print(
            f"{mode:>10} {n:6d} {m:8d} {threads:4d}"
            f" {k_med:11.2f} {_p95(k_times):11.2f} {s_med:11.2f} {speedup:8.2f} {max(errors):8.2g}"
        )


if __name__ == "__main__":  # pragma: no cover - manual invocation
    main()
