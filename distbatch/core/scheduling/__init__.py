"""Concurrent batch scheduling of build graphs."""

from distbatch.core.scheduling.events import (
    BatchCompleted,
    BatchStarted,
    BuildFailed,
    BuildQueued,
    BuildStarted,
    BuildSucceeded,
    DependencyFailed,
    Event,
)
from distbatch.core.scheduling.models import BuildResult, BuildState, BuildSummary
from distbatch.core.scheduling.scheduler import DEFAULT_WORKERS, BatchScheduler

__all__ = [
    "DEFAULT_WORKERS",
    "BatchCompleted",
    "BatchScheduler",
    "BatchStarted",
    "BuildFailed",
    "BuildQueued",
    "BuildResult",
    "BuildStarted",
    "BuildState",
    "BuildSucceeded",
    "BuildSummary",
    "DependencyFailed",
    "Event",
]
