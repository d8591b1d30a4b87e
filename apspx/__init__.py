"""Public package exports for :mod:`apspx`."""

from __future__ import annotations

from .blocked import BlockedParallelKernel, global_index, validate_block_length
from .exceptions import (
    AlgorithmError,
    APSPXError,
    ConfigError,
    GraphFormatError,
    InputError,
)
from .generator import (
    GraphGenerator,
    generate_matrix,
    load_edge_list_txt,
    max_edges,
    sample_edges,
    save_edge_list_txt,
)
from .kernels import (
    KERNEL_MODES,
    KernelMetrics,
    NaiveParallelKernel,
    SequentialKernel,
    make_kernel,
)
from .logger import Logger, NoopLogger, StdLogger
from .matrix import UNREACHABLE, DistanceMatrix
from .parallel import KernelConfig, WorkerPool, clamp_threads, max_threads
from .validation import assert_converged, verify_converged

__version__ = "0.1.0"

__all__ = [
    "DistanceMatrix",
    "UNREACHABLE",
    "GraphGenerator",
    "generate_matrix",
    "sample_edges",
    "max_edges",
    "load_edge_list_txt",
    "save_edge_list_txt",
    "KernelConfig",
    "KernelMetrics",
    "KERNEL_MODES",
    "SequentialKernel",
    "NaiveParallelKernel",
    "BlockedParallelKernel",
    "make_kernel",
    "global_index",
    "validate_block_length",
    "WorkerPool",
    "clamp_threads",
    "max_threads",
    "assert_converged",
    "verify_converged",
    "Logger",
    "NoopLogger",
    "StdLogger",
    "APSPXError",
    "AlgorithmError",
    "ConfigError",
    "GraphFormatError",
    "InputError",
]
