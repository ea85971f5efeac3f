"""Data models for batch scheduling: package states, results and summaries."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class BuildState(StrEnum):
    """Lifecycle of one package within a batch.

    ``pending -> ready -> running -> succeeded | failed``, or
    ``pending -> failed_by_dependency`` when something it needs failed.
    """

    PENDING = "pending"
    READY = "ready"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    FAILED_BY_DEPENDENCY = "failed_by_dependency"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES

    @property
    def is_failure(self) -> bool:
        return self in (BuildState.FAILED, BuildState.FAILED_BY_DEPENDENCY)


_TERMINAL_STATES = frozenset({
    BuildState.SUCCEEDED,
    BuildState.FAILED,
    BuildState.FAILED_BY_DEPENDENCY,
})


class BuildResult(BaseModel):
    """Outcome of one build attempt, as reported by a worker.

    Attributes
    ----------
    name : str
        Full name of the package
    succeeded : bool
        Whether the executor reported success
    duration_ms : float
        Wall-clock time spent in the executor
    """

    model_config = ConfigDict(frozen=True)

    name: str
    succeeded: bool
    duration_ms: float = 0.0


class BuildSummary(BaseModel):
    """Terminal state of every package in a finished batch.

    Attributes
    ----------
    states : dict[str, BuildState]
        Final state per package
    order : list[str]
        Packages in the order their builds completed (attempted ones only)
    duration_ms : float
        Wall-clock time of the whole batch

    Examples
    --------
    >>> summary = BuildSummary(states={"a-1": "succeeded", "b-1": "failed_by_dependency"})
    >>> summary.succeeded, summary.failed, summary.total
    (1, 1, 2)
    """

    states: dict[str, BuildState] = Field(default_factory=dict)
    order: list[str] = Field(default_factory=list)
    duration_ms: float = 0.0

    def names_in(self, state: BuildState) -> list[str]:
        """Packages that ended in ``state``, sorted by name."""
        return sorted(name for name, value in self.states.items() if value == state)

    @property
    def succeeded(self) -> int:
        return len(self.names_in(BuildState.SUCCEEDED))

    @property
    def failed_directly(self) -> int:
        return len(self.names_in(BuildState.FAILED))

    @property
    def failed_by_dependency(self) -> int:
        return len(self.names_in(BuildState.FAILED_BY_DEPENDENCY))

    @property
    def failed(self) -> int:
        """Direct and cascaded failures."""
        return self.failed_directly + self.failed_by_dependency

    @property
    def total(self) -> int:
        return len(self.states)

    @property
    def ok(self) -> bool:
        return self.failed == 0


__all__ = ["BuildResult", "BuildState", "BuildSummary"]
