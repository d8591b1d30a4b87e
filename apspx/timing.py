"""Labeled elapsed-time entries reported by the harness."""

from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from typing import List, Tuple


@dataclass
class Timestamps:
    """Ordered list of ``(label, nanoseconds)`` entries."""

    entries: List[Tuple[str, int]] = field(default_factory=list)

    def mark(self, label: str, elapsed_ns: int) -> None:
        """Record ``elapsed_ns`` under ``label``."""
        self.entries.append((label, int(elapsed_ns)))

    def average(self) -> float:
        """Mean of all recorded entries in nanoseconds (``0.0`` when empty)."""
        if not self.entries:
            return 0.0
        return statistics.fmean(ns for _, ns in self.entries)

    def render(self) -> str:
        """One ``label: N ns`` line per entry."""
        return "\n".join(f"{label}: {ns} ns" for label, ns in self.entries)


__all__ = ["Timestamps"]
