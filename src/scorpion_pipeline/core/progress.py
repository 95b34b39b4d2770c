"""
Progress reporting side channel.

The pipeline never prints directly. Phase markers and per-iteration status
lines are handed to a ``ProgressReporter`` passed in by the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, Union, runtime_checkable


@runtime_checkable
class ProgressReporter(Protocol):
    """Receives phase markers and status lines."""

    def phase(self, message: str) -> None:
        ...

    def status(self, message: str) -> None:
        ...


class NullProgress:
    """Discards every message."""

    def phase(self, message: str) -> None:
        pass

    def status(self, message: str) -> None:
        pass


class LoggingProgress:
    """
    Forwards progress to a logger.

    Phase markers are logged at INFO, iteration status at DEBUG unless
    ``verbose_status`` is set.

    Example:
        >>> progress = LoggingProgress(logging.getLogger("scorpion"))
        >>> progress.phase("Learning Network")
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        verbose_status: bool = True,
    ):
        self.logger = logger or logging.getLogger("scorpion_pipeline")
        self.status_level = logging.INFO if verbose_status else logging.DEBUG

    def phase(self, message: str) -> None:
        self.logger.info(message)

    def status(self, message: str) -> None:
        self.logger.log(self.status_level, message)


class CallbackProgress:
    """Adapts a plain ``callable(message)`` to the reporter interface."""

    def __init__(self, callback: Callable[[str], None]):
        self.callback = callback

    def phase(self, message: str) -> None:
        self.callback(message)

    def status(self, message: str) -> None:
        self.callback(message)


@dataclass
class RecordingProgress:
    """Keeps every message in memory, mostly useful in tests and notebooks."""

    phases: list[str] = field(default_factory=list)
    statuses: list[str] = field(default_factory=list)

    def phase(self, message: str) -> None:
        self.phases.append(message)

    def status(self, message: str) -> None:
        self.statuses.append(message)


ProgressLike = Union[ProgressReporter, Callable[[str], None], None]


def as_reporter(progress: ProgressLike, enabled: bool = True) -> ProgressReporter:
    """
    Resolve user input into a ``ProgressReporter``.

    Args:
        progress: Reporter instance, plain callable, or None for logging.
        enabled: When False, every message is discarded.

    Returns:
        A reporter.
    """
    if not enabled:
        return NullProgress()
    if progress is None:
        return LoggingProgress()
    if isinstance(progress, ProgressReporter):
        return progress
    if callable(progress):
        return CallbackProgress(progress)
    raise TypeError(f"Unsupported progress reporter: {type(progress).__name__}")
