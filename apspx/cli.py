"""Command-line harness: generate an instance, run one kernel, report."""

from __future__ import annotations

import argparse
import json
import sys
import traceback
import tracemalloc
from dataclasses import asdict
from typing import List, Optional, Tuple

from .blocked import validate_block_length
from .exceptions import APSPXError, ConfigError, InputError
from .generator import GraphGenerator, load_edge_list_txt, save_edge_list_txt, validate_graph_size
from .kernels import BaseKernel, KernelMetrics, make_kernel
from .logger import StdLogger
from .matrix import DistanceMatrix
from .parallel import KernelConfig, clamp_threads
from .profiling import ProfileSession
from .timing import Timestamps
from .validation import verify_converged

MODE_HELP = (
    "Specify mode of execution:\n"
    "  -s: sequential\n"
    "  -n: naive-parallel (no cache optimizations)\n"
    "  -b: block-parallel (cache optimizations)"
)

PHASE_LABELS = {
    "dependent": "Dependent phase time",
    "partial": "Partially dependent phase time",
    "independent": "Independent phase time",
}


def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer {text!r}") from None
    if value < 1:
        raise argparse.ArgumentTypeError(f"{value} is not >= 1")
    return value


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser of the ``apspx`` command."""
    examples = (
        "Examples:\n"
        "  apspx -s -v 200 -e 800\n"
        "  apspx -n -v 1000 -e 5000 -t 8\n"
        "  apspx -b -v 1000 -e 5000 -t 8 -l 100\n"
        "  apspx -b -v 8 -e 12 -l 4 --print --verify\n"
    )
    p = argparse.ArgumentParser(
        prog="apspx",
        description="Floyd-Warshall all-pairs shortest paths on a random dense graph",
        epilog=examples,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("-s", "--sequential", dest="mode", action="store_const", const="sequential")
    mode.add_argument("-n", "--naive-parallel", dest="mode", action="store_const", const="naive")
    mode.add_argument("-b", "--block-parallel", dest="mode", action="store_const", const="blocked")

    p.add_argument("-v", "--vertices", type=_positive_int, default=100, help="Vertices (>= 1)")
    p.add_argument("-e", "--edges", type=_positive_int, default=200, help="Edges (>= 1)")
    p.add_argument("-t", "--threads", type=_positive_int, default=1,
                   help="Worker threads (>= 1, lowered to the hardware maximum)")
    p.add_argument("-l", "--block-length", type=_positive_int, default=1,
                   help="Block side length (>= 1, must divide the vertex count)")
    p.add_argument("-p", "--print", dest="print_matrix", action="store_true",
                   help="Print the matrix before and after execution")
    p.add_argument("--seed", type=int, default=None, help="Seed for the graph generator")

    p.add_argument("--graph", type=str, default=None,
                   help="Load an edge-list file instead of generating a graph")
    p.add_argument("--save-graph", type=str, default=None, help="Write the input graph as an edge list")
    p.add_argument("--verify", action="store_true", help="Check the converged matrix invariants")
    p.add_argument("--check-writes", action="store_true",
                   help="Verify that concurrent tasks write disjoint cells")

    p.add_argument("--profile", action="store_true", help="Enable cProfile")
    p.add_argument("--profile-out", type=str, default=None, help="Dump .prof file to this path")
    p.add_argument("--metrics-out", type=str, default=None, help="Write run metrics to this JSON file")
    p.add_argument("--plot", type=str, default=None, help="Save a heatmap of the converged matrix")

    p.add_argument("--verbose", action="store_true", help="Show full tracebacks")
    p.add_argument("--log-json", action="store_true", help="Emit structured log lines")
    p.add_argument(
        "--log-level",
        choices=["debug", "info", "warning"],
        default="warning",
        help="Log verbosity",
    )
    return p


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the ``apspx`` command-line tool."""
    args = build_parser().parse_args(argv)
    logger = StdLogger(level=args.log_level, json_fmt=args.log_json, stream=sys.stderr)

    try:
        if args.mode is None:
            raise ConfigError(MODE_HELP)

        if args.graph:
            matrix, edges = load_edge_list_txt(args.graph)
            vertices = matrix.n
        else:
            vertices, edges = args.vertices, args.edges
            validate_graph_size(vertices, edges)
        validate_block_length(vertices, args.block_length)
        threads = clamp_threads(args.threads, logger)

        cfg = KernelConfig(
            threads=threads,
            block_length=args.block_length,
            check_writes=args.check_writes,
        )
        kernel = make_kernel(args.mode, cfg, logger)

        if not args.graph:
            logger.info("generating_graph", vertices=vertices, edges=edges, seed=args.seed)
            matrix = GraphGenerator(args.seed).generate(vertices, edges)
            logger.info("graph_ready", nbytes=matrix.nbytes)
        if args.save_graph:
            save_edge_list_txt(matrix, args.save_graph)

        input_edges = matrix.finite_edges() if args.verify else None

        if args.print_matrix:
            print("Graph before Floyd-Warshall:")
            print(matrix.render())

        logger.info("kernel_start", mode=args.mode, threads=threads, block_length=args.block_length)
        metrics, peak_mib = _run_kernel(kernel, matrix, args)
        logger.info("kernel_done", mode=args.mode, wall_ms=round(metrics.wall_ms, 3))

        if args.verify:
            problems = verify_converged(matrix, input_edges)
            for problem in problems:
                logger.error("verify_failed", problem=problem)
            if problems:
                return 70
            logger.info("verify_ok", vertices=vertices)

        timestamps = Timestamps()
        timestamps.mark(metrics.label, metrics.wall_ns)
        for phase, ns in metrics.phase_ns.items():
            timestamps.mark(PHASE_LABELS.get(phase, phase), ns)

        if args.print_matrix:
            print("Graph after Floyd-Warshall:")
            print(matrix.render())
        print(f"Number of vertices: {vertices}")
        print(f"Number of edges: {edges}")
        print(f"Graph memory footprint: {matrix.nbytes}")
        print(f"Number of threads: {threads}")
        print(f"Block length: {args.block_length}")
        print(timestamps.render())

        if args.metrics_out:
            out = asdict(metrics)
            out.update(edges=edges, peak_mib=peak_mib, seed=args.seed)
            with open(args.metrics_out, "w", encoding="utf-8") as fh:
                json.dump(out, fh)
        if args.plot:
            from .visualize import plot_distance_heatmap

            plot_distance_heatmap(matrix, args.plot)
        return 0

    except (ConfigError, InputError) as exc:
        if args.verbose:
            traceback.print_exc()
        logger.error("config_error", message=str(exc))
        return 1
    except APSPXError as exc:
        if args.verbose:
            traceback.print_exc()
        logger.error("internal_error", message=str(exc))
        return 70


def _run_kernel(
    kernel: BaseKernel, matrix: DistanceMatrix, args: argparse.Namespace
) -> Tuple[KernelMetrics, Optional[float]]:
    """Run ``kernel`` under the optional profiler and peak-memory tracker."""
    if args.metrics_out:
        tracemalloc.start()
    if args.profile:
        with ProfileSession(dump_path=args.profile_out) as prof:
            metrics = kernel.run(matrix)
        sys.stderr.write(prof.report(lines=40))
    else:
        metrics = kernel.run(matrix)
    if not args.metrics_out:
        return metrics, None
    _, peak = tracemalloc.get_traced_memory()
    tracemalloc.stop()
    return metrics, peak / (1024 * 1024)


if __name__ == "__main__":
    sys.exit(main())
