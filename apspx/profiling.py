"""Optional :mod:`cProfile` integration for kernel runs."""

from __future__ import annotations

import cProfile
import pstats
from io import StringIO
from types import TracebackType
from typing import Optional


class ProfileSession:
    """Context manager recording a :mod:`cProfile` session.

    Example:
        ```python
        >>> with ProfileSession() as prof:
        ...     kernel.run(matrix)
        >>> print(prof.report(lines=20))
        ```
    """

    def __init__(self, dump_path: Optional[str] = None, sort_key: str = "cumulative") -> None:
        """Initialize the session.

        Args:
            dump_path: Optional path where raw stats are dumped on exit, for
                ``snakeviz`` or ``pstats`` later on.
            sort_key: :mod:`pstats` column used to order the report.
        """
        self.dump_path = dump_path
        self.sort_key = sort_key
        self._prof = cProfile.Profile()
        self._finished = False

    def __enter__(self) -> "ProfileSession":
        self._prof.enable()
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self._prof.disable()
        if self.dump_path:
            self._prof.dump_stats(self.dump_path)
        self._finished = True

    def report(self, lines: int = 20) -> str:
        """Return the top ``lines`` rows of the statistics table."""
        if not self._finished:
            raise RuntimeError("profiling session not finished")
        buffer = StringIO()
        pstats.Stats(self._prof, stream=buffer).strip_dirs().sort_stats(self.sort_key).print_stats(
            lines
        )
        return buffer.getvalue()


__all__ = ["ProfileSession"]
