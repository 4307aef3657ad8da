"""
Progress reporters.

A reporter is passed explicitly to the jobs that accept one; nothing in
the package keeps progress in module-level state.
"""

from __future__ import annotations

from typing import Optional

from tqdm import tqdm


class ProgressReporter:
    """Interface: ``start`` once, ``advance`` any number of times, ``close``."""

    def start(self, total: Optional[int], desc: str = "") -> None:
        raise NotImplementedError

    def advance(self, n: int = 1) -> None:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError


class NullReporter(ProgressReporter):
    """Reporter that records nothing."""

    def start(self, total: Optional[int], desc: str = "") -> None:
        pass

    def advance(self, n: int = 1) -> None:
        pass

    def close(self) -> None:
        pass


class TqdmReporter(ProgressReporter):
    """Progress bar on stderr backed by tqdm."""

    def __init__(self, unit: str = "chunk", leave: bool = False) -> None:
        self.unit = unit
        self.leave = leave
        self._bar: Optional[tqdm] = None

    def start(self, total: Optional[int], desc: str = "") -> None:
        self.close()
        self._bar = tqdm(total=total, desc=desc, unit=self.unit, leave=self.leave)

    def advance(self, n: int = 1) -> None:
        if self._bar is not None:
            self._bar.update(n)

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None


def ensure_reporter(reporter: Optional[ProgressReporter]) -> ProgressReporter:
    return reporter if reporter is not None else NullReporter()
