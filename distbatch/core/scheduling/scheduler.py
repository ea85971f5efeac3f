"""Batch scheduler - builds an acyclic BuildGraph with a fixed worker pool.

One coordinator owns all scheduling state; N workers only ever see package
names coming in on the work queue and report back on the results queue::

                  work queue                 results queue
    coordinator ───────────────▶ worker 0..N ───────────────▶ coordinator
     (states,     name | None     abuild(name)   BuildStarted
      readiness,                                 BuildResult
      cascades)

The coordinator seeds the queue with every package that has no dependencies.
Each successful build makes its dependents ready once all of their own
dependencies succeeded; each failed build marks every transitive dependent as
failed without attempting it. The batch ends when every package is in a
terminal state, at which point one ``None`` per worker closes the queue.

All tasks run on one event loop inside an asyncio.TaskGroup. If a worker's
executor raises, the group cancels the coordinator and the remaining workers
and the run fails with ExecutorFaultError. Build failures never do that.
"""

import asyncio
import time
from collections.abc import Mapping
from types import MappingProxyType

from distbatch.core.domain.cycles import topological_order
from distbatch.core.domain.graph import BuildGraph
from distbatch.core.exceptions import (
    ExecutorFaultError,
    SchedulerInvariantError,
    ValidationError,
)
from distbatch.core.logging import get_logger
from distbatch.core.ports.executor import BuildExecutor
from distbatch.core.ports.observer import BuildObserver
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

logger = get_logger(__name__)

DEFAULT_WORKERS = 8

_ALLOWED_TRANSITIONS: dict[BuildState, frozenset[BuildState]] = {
    BuildState.PENDING: frozenset({BuildState.READY, BuildState.FAILED_BY_DEPENDENCY}),
    BuildState.READY: frozenset({BuildState.RUNNING}),
    BuildState.RUNNING: frozenset({BuildState.SUCCEEDED, BuildState.FAILED}),
}

_EVENT_LOG_LEVELS: dict[type[Event], str] = {
    BatchStarted: "INFO",
    BatchCompleted: "INFO",
    BuildQueued: "DEBUG",
    BuildStarted: "INFO",
    BuildSucceeded: "INFO",
    BuildFailed: "WARNING",
    DependencyFailed: "WARNING",
}

WorkerMessage = BuildStarted | BuildResult


def _first_error(group: BaseExceptionGroup) -> BaseException:
    """Dig the first leaf exception out of a (possibly nested) group."""
    first = group.exceptions[0]
    if isinstance(first, BaseExceptionGroup):
        return _first_error(first)
    return first


class BatchScheduler:
    """Executes every package of an acyclic BuildGraph in dependency order.

    Parameters
    ----------
    graph : BuildGraph
        Graph to build. Must be acyclic (see resolve_cycles()).
    executor : BuildExecutor
        Performs the individual builds
    workers : int, default=8
        Number of builds that may run at the same time
    observer : BuildObserver | None
        Optional receiver of scheduling events

    Examples
    --------
    Basic usage::

        scheduler = BatchScheduler(resolution.graph, SimulatedBuildExecutor(), workers=4)
        summary = await scheduler.run()
        print(summary.succeeded, summary.failed)
    """

    def __init__(
        self,
        graph: BuildGraph,
        executor: BuildExecutor,
        workers: int = DEFAULT_WORKERS,
        observer: BuildObserver | None = None,
    ) -> None:
        if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
            raise ValidationError("workers", "must be a positive integer", value=workers)
        self._graph = graph
        self._executor = executor
        self._workers = workers
        self._observer = observer

        self._states: dict[str, BuildState] = {}
        self._order: list[str] = []
        self._terminal = 0

    @property
    def states(self) -> Mapping[str, BuildState]:
        """Read-only view of the current package states."""
        return MappingProxyType(self._states)

    async def run(self) -> BuildSummary:
        """Build every package and return the final states.

        Returns
        -------
        BuildSummary
            Terminal state of every package; build failures are reported here
            and never raised

        Raises
        ------
        CycleDetectedError
            If the graph still contains a cycle. Nothing is built.
        ExecutorFaultError
            If the executor raised instead of reporting a result.
        SchedulerInvariantError
            If the state machine was violated.
        """
        topological_order(self._graph)

        self._states = dict.fromkeys(self._graph.names, BuildState.PENDING)
        self._order = []
        self._terminal = 0
        start_time = time.time()

        if self._graph:
            # Room for every package plus one shutdown sentinel per worker,
            # so the coordinator never waits on put.
            work: asyncio.Queue[str | None] = asyncio.Queue(
                maxsize=len(self._graph) + self._workers
            )
            results: asyncio.Queue[WorkerMessage] = asyncio.Queue()
            try:
                async with asyncio.TaskGroup() as tg:
                    for index in range(self._workers):
                        tg.create_task(
                            self._worker(index, work, results), name=f"distbatch-worker-{index}"
                        )
                    await self._coordinate(work, results)
                    for _ in range(self._workers):
                        work.put_nowait(None)
            except BaseExceptionGroup as group:
                error = _first_error(group)
                if isinstance(error, ExecutorFaultError):
                    logger.error("Cancelling batch: {error}", error=str(error))
                raise error

        summary = BuildSummary(
            states=dict(self._states),
            order=list(self._order),
            duration_ms=(time.time() - start_time) * 1000,
        )
        await self._notify(
            BatchCompleted(
                succeeded=summary.succeeded,
                failed=summary.failed,
                total=summary.total,
                duration_ms=summary.duration_ms,
            )
        )
        return summary

    # ------------------------------------------------------------------
    # Coordinator
    # ------------------------------------------------------------------

    async def _coordinate(
        self, work: "asyncio.Queue[str | None]", results: "asyncio.Queue[WorkerMessage]"
    ) -> None:
        total = len(self._graph)
        leaves = self._graph.leaves()
        await self._notify(BatchStarted(total=total, workers=self._workers, leaves=len(leaves)))

        for name in leaves:
            await self._dispatch(name, work)

        while self._terminal < total:
            message = await results.get()

            if isinstance(message, BuildStarted):
                self._transition(message.name, BuildState.RUNNING)
                await self._notify(message)
                continue

            name = message.name
            self._order.append(name)
            if message.succeeded:
                self._transition(name, BuildState.SUCCEEDED)
                await self._notify(BuildSucceeded(name=name, duration_ms=message.duration_ms))
                for dependent in self._graph.dependents(name):
                    if self._states[dependent] == BuildState.PENDING and self._can_build(
                        dependent
                    ):
                        await self._dispatch(dependent, work)
            else:
                self._transition(name, BuildState.FAILED)
                await self._notify(BuildFailed(name=name, duration_ms=message.duration_ms))
                await self._mark_failed(name)

    async def _dispatch(self, name: str, work: "asyncio.Queue[str | None]") -> None:
        self._transition(name, BuildState.READY)
        try:
            work.put_nowait(name)
        except asyncio.QueueFull:
            raise SchedulerInvariantError(
                f"work queue full while enqueuing {name}", package=name
            ) from None
        await self._notify(BuildQueued(name=name))

    def _can_build(self, name: str) -> bool:
        """Whether every dependency of ``name`` has been built."""
        return all(
            self._states[dep] == BuildState.SUCCEEDED for dep in self._graph.dependencies(name)
        )

    async def _mark_failed(self, name: str) -> None:
        """Fail every package that transitively depends on ``name``."""
        logger.info("marking dependents of {name} as failed", name=name)
        visited = {name}
        worklist = [name]
        while worklist:
            current = worklist.pop()
            for dependent in self._graph.dependents(current):
                if dependent in visited:
                    continue
                visited.add(dependent)
                state = self._states[dependent]
                if state == BuildState.FAILED_BY_DEPENDENCY:
                    # Reached through an earlier failure; its dependents are done too.
                    continue
                if state != BuildState.PENDING:
                    raise SchedulerInvariantError(
                        f"{dependent} is {state.value}, but its dependency {current} "
                        "cannot be fulfilled",
                        package=dependent,
                    )
                self._transition(dependent, BuildState.FAILED_BY_DEPENDENCY)
                await self._notify(DependencyFailed(name=dependent, failed_dependency=current))
                worklist.append(dependent)

    def _transition(self, name: str, new: BuildState) -> None:
        old = self._states.get(name)
        if old is None:
            raise SchedulerInvariantError(f"unknown package {name}", package=name)
        if new not in _ALLOWED_TRANSITIONS.get(old, frozenset()):
            raise SchedulerInvariantError(
                f"illegal transition of {name}: {old.value} -> {new.value}", package=name
            )
        self._states[name] = new
        if new.is_terminal:
            self._terminal += 1

    async def _notify(self, event: Event) -> None:
        logger.log(_EVENT_LOG_LEVELS.get(type(event), "DEBUG"), event.log_message())
        if self._observer is not None:
            await self._observer.notify(event)

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------

    async def _worker(
        self,
        index: int,
        work: "asyncio.Queue[str | None]",
        results: "asyncio.Queue[WorkerMessage]",
    ) -> None:
        while (name := await work.get()) is not None:
            await results.put(BuildStarted(name=name, worker=index))
            start_time = time.time()
            try:
                succeeded = await self._executor.abuild(name)
            except ExecutorFaultError:
                raise
            except Exception as e:
                raise ExecutorFaultError(name, f"{type(e).__name__}: {e}") from e
            await results.put(
                BuildResult(
                    name=name,
                    succeeded=bool(succeeded),
                    duration_ms=(time.time() - start_time) * 1000,
                )
            )


__all__ = ["DEFAULT_WORKERS", "BatchScheduler"]
