"""
Progress reporting for long-running operations.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from ..models import ProgressEvent

ProgressCallback = Callable[[int, str, Optional[Dict[str, Any]]], None]


class ProgressReporter:
    """
    Forwards ``(percent, message, detail)`` to a caller-supplied sink.

    Percentages are clamped to 0..100 and never decrease within one
    reporter. ``span`` hands a sub-operation its own 0..100 scale mapped
    into a slice of the parent's range.
    """

    def __init__(
        self,
        sink: Optional[ProgressCallback] = None,
        start: float = 0.0,
        end: float = 100.0,
        parent: Optional[ProgressReporter] = None,
    ):
        self.sink = sink
        self.start = start
        self.end = end
        self.parent = parent
        self.last_event: Optional[ProgressEvent] = None
        self._floor = 0

    def report(self, percent: float, message: str, detail: Optional[Dict[str, Any]] = None) -> None:
        local = min(100.0, max(0.0, float(percent)))
        scaled = int(round(self.start + (self.end - self.start) * local / 100.0))
        if self.parent is not None:
            self.parent.report(scaled, message, detail)
            self.last_event = self.parent.last_event
            return

        value = max(self._floor, scaled)
        self._floor = value
        event = ProgressEvent(value, message, detail)
        self.last_event = event
        if self.sink is not None:
            self.sink(event.percent, event.message, event.detail)

    def span(self, start: float, end: float) -> ProgressReporter:
        """Return a child reporter covering ``start``..``end`` of this one."""

        return ProgressReporter(start=start, end=end, parent=self)

    @classmethod
    def wrap(cls, progress: Any) -> ProgressReporter:
        """Accept an existing reporter, a bare callback or None."""

        if isinstance(progress, ProgressReporter):
            return progress
        return cls(progress)


__all__ = ["ProgressCallback", "ProgressReporter"]
