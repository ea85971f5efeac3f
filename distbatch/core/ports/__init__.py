"""Port interfaces the core depends on."""

from distbatch.core.ports.executor import BuildExecutor
from distbatch.core.ports.observer import BuildObserver

__all__ = ["BuildExecutor", "BuildObserver"]
