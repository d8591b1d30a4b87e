"""Custom exception types used across :mod:`apspx`."""

from __future__ import annotations


class APSPXError(Exception):
    """Base class for all package-specific errors."""


class InputError(APSPXError, ValueError):
    """Raised for invalid user input such as a malformed matrix."""


class GraphFormatError(InputError):
    """Raised when parsing an edge-list file fails."""


class ConfigError(APSPXError, ValueError):
    """Raised for invalid run configuration (mode, edge count, block length)."""


class AlgorithmError(APSPXError, RuntimeError):
    """Raised when a kernel precondition or invariant is violated at runtime."""


__all__ = [
    "APSPXError",
    "InputError",
    "GraphFormatError",
    "ConfigError",
    "AlgorithmError",
]
