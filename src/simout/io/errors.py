from __future__ import annotations
from typing import Optional


class OutputConfigError(ValueError):
    """Fatal startup problem: unknown output format, unopenable destination."""


class OutputWriteError(OSError):
    """
    I/O failure while writing one event to one destination.

    The event is lost for that destination; the driver decides whether the run continues.
    """

    def __init__(
        self,
        message: str,
        *,
        destination: str,
        event_index: int,
        detector: Optional[str] = None,
    ) -> None:
        self.destination = destination
        self.event_index = event_index
        self.detector = detector
        where = f"event {event_index}"
        if detector is not None:
            where += f", detector '{detector}'"
        super().__init__(f"Output write failure on {destination} ({where}): {message}")


class WriterOrderError(AssertionError):
    """Writer calls made out of contract order; a bug in the caller, not a runtime condition."""
