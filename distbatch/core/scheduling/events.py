"""Simple event data classes emitted while a batch runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Event:
    """Base class for all events - provides timestamp."""

    timestamp: datetime = field(default_factory=datetime.now, init=False)

    def log_message(self) -> str:
        """Get a formatted log message for this event.

        Returns
        -------
        str
            A formatted string suitable for logging
        """
        return f"{self.__class__.__name__} at {self.timestamp.isoformat()}"


# Batch events
@dataclass(slots=True)
class BatchStarted(Event):
    """Scheduling has begun."""

    total: int
    workers: int
    leaves: int

    def log_message(self) -> str:
        return (
            f"Building {self.total} packages with {self.workers} workers "
            f"({self.leaves} without dependencies)"
        )


@dataclass(slots=True)
class BatchCompleted(Event):
    """Every package reached a terminal state."""

    succeeded: int
    failed: int
    total: int
    duration_ms: float

    def log_message(self) -> str:
        return f"{self.succeeded} packages succeeded, {self.failed} failed, {self.total} total"


# Package events
@dataclass(slots=True)
class BuildQueued(Event):
    """A package became ready and was put on the work queue."""

    name: str

    def log_message(self) -> str:
        return f"→ enqueuing {self.name}"


@dataclass(slots=True)
class BuildStarted(Event):
    """A worker picked up a package.

    Workers also use this event to tell the coordinator they started, so it
    travels over the results channel before the matching BuildResult.
    """

    name: str
    worker: int = 0

    def log_message(self) -> str:
        return f"worker {self.worker}: building {self.name}"


@dataclass(slots=True)
class BuildSucceeded(Event):
    """The executor reported a successful build."""

    name: str
    duration_ms: float = 0.0

    def log_message(self) -> str:
        return f"build {self.name} completed in {self.duration_ms:.0f}ms"


@dataclass(slots=True)
class BuildFailed(Event):
    """The executor reported a failed build."""

    name: str
    duration_ms: float = 0.0

    def log_message(self) -> str:
        return f"build {self.name} failed after {self.duration_ms:.0f}ms"


@dataclass(slots=True)
class DependencyFailed(Event):
    """A package can no longer be built because something it needs failed."""

    name: str
    failed_dependency: str

    def log_message(self) -> str:
        return f"{self.name} failed: dependency {self.failed_dependency} cannot be built"


__all__ = [
    "BatchCompleted",
    "BatchStarted",
    "BuildFailed",
    "BuildQueued",
    "BuildStarted",
    "BuildSucceeded",
    "DependencyFailed",
    "Event",
]
