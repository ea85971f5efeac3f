"""Tests for BatchScheduler."""

import asyncio

import pytest

from distbatch.core.exceptions import (
    CycleDetectedError,
    ExecutorFaultError,
    SchedulerInvariantError,
    ValidationError,
)
from distbatch.core.scheduling.events import (
    BatchCompleted,
    BatchStarted,
    BuildQueued,
    BuildStarted,
    BuildSucceeded,
    DependencyFailed,
)
from distbatch.core.scheduling.models import BuildState
from distbatch.core.scheduling.scheduler import BatchScheduler
from distbatch.drivers.executors.simulated_executor import SimulatedBuildExecutor


def _instant(**kwargs) -> SimulatedBuildExecutor:
    return SimulatedBuildExecutor(min_duration=0, max_duration=0, **kwargs)


class TestSchedulerConstruction:
    @pytest.mark.parametrize("workers", [0, -1, True, 1.5, "8"])
    def test_invalid_workers(self, diamond, workers) -> None:
        with pytest.raises(ValidationError, match="workers"):
            BatchScheduler(diamond, _instant(), workers=workers)

    def test_states_view_is_read_only(self, diamond) -> None:
        scheduler = BatchScheduler(diamond, _instant())
        with pytest.raises(TypeError):
            scheduler.states["a"] = BuildState.SUCCEEDED  # type: ignore[index]


class TestSchedulerRun:
    @pytest.mark.asyncio
    async def test_all_succeed(self, diamond) -> None:
        executor = _instant()
        summary = await BatchScheduler(diamond, executor, workers=2).run()

        assert summary.succeeded == 4
        assert summary.failed == 0
        assert summary.total == 4
        assert summary.ok
        assert sorted(executor.calls) == ["a", "b", "c", "d"]
        assert summary.order[0] == "a"
        assert summary.order[-1] == "d"

    @pytest.mark.asyncio
    async def test_failure_cascades_to_dependents(self, diamond) -> None:
        executor = _instant(fail=["b"])
        summary = await BatchScheduler(diamond, executor).run()

        assert summary.states == {
            "a": BuildState.SUCCEEDED,
            "b": BuildState.FAILED,
            "c": BuildState.SUCCEEDED,
            "d": BuildState.FAILED_BY_DEPENDENCY,
        }
        assert summary.succeeded == 2
        assert summary.failed == 2
        assert "d" not in executor.calls
        assert "d" not in summary.order

    @pytest.mark.asyncio
    async def test_cascade_is_transitive(self, make_graph) -> None:
        graph = make_graph(["a", "b", "c", "x"], [("b", "a"), ("c", "b")])
        summary = await BatchScheduler(graph, _instant(fail=["a"])).run()

        assert summary.names_in(BuildState.FAILED) == ["a"]
        assert summary.names_in(BuildState.FAILED_BY_DEPENDENCY) == ["b", "c"]
        assert summary.names_in(BuildState.SUCCEEDED) == ["x"]

    @pytest.mark.asyncio
    async def test_package_with_two_failed_dependencies(self, diamond, recording_executor) -> None:
        executor = recording_executor(fail=["b", "c"])
        summary = await BatchScheduler(diamond, executor).run()

        assert summary.states["d"] == BuildState.FAILED_BY_DEPENDENCY
        assert summary.failed_directly == 2
        assert summary.failed_by_dependency == 1

    @pytest.mark.asyncio
    async def test_dependencies_finish_before_dependents_start(
        self, make_graph, recording_executor
    ) -> None:
        graph = make_graph(
            ["a", "b", "c", "d", "e", "f"],
            [("b", "a"), ("c", "a"), ("d", "b"), ("d", "c"), ("e", "d"), ("f", "a")],
        )
        executor = recording_executor(delays={"a": 0.01, "c": 0.02, "f": 0.03})
        await BatchScheduler(graph, executor, workers=3).run()

        for name in graph.names:
            assert set(graph.dependencies(name)) <= executor.done_before[name]

    @pytest.mark.asyncio
    async def test_each_package_built_at_most_once(self, make_graph, recording_executor) -> None:
        names = [f"p{i}" for i in range(20)]
        edges = [(names[i], names[i // 2]) for i in range(1, 20)]
        executor = recording_executor(fail=["p3"])
        summary = await BatchScheduler(make_graph(names, edges), executor, workers=4).run()

        assert len(executor.calls) == len(set(executor.calls))
        attempted = [n for n, s in summary.states.items() if s != BuildState.FAILED_BY_DEPENDENCY]
        assert sorted(executor.calls) == sorted(attempted)

    @pytest.mark.asyncio
    async def test_parallelism_bounded_by_workers(self, make_graph, recording_executor) -> None:
        graph = make_graph([f"leaf{i}" for i in range(10)])
        executor = recording_executor(delay=0.01)
        summary = await BatchScheduler(graph, executor, workers=3).run()

        assert summary.succeeded == 10
        assert executor.max_running <= 3

    @pytest.mark.asyncio
    async def test_single_worker_builds_in_topological_order(
        self, diamond, recording_executor
    ) -> None:
        executor = recording_executor()
        await BatchScheduler(diamond, executor, workers=1).run()
        assert executor.calls == ["a", "b", "c", "d"]

    @pytest.mark.asyncio
    async def test_empty_graph(self, make_graph, observer) -> None:
        summary = await BatchScheduler(make_graph([]), _instant(), observer=observer).run()

        assert summary.total == 0
        assert summary.ok
        assert [type(e) for e in observer.events] == [BatchCompleted]

    @pytest.mark.asyncio
    async def test_cyclic_graph_refused(self, make_graph) -> None:
        graph = make_graph(["x", "y"], [("x", "y"), ("y", "x")])
        executor = _instant()
        with pytest.raises(CycleDetectedError):
            await BatchScheduler(graph, executor).run()
        assert executor.calls == []

    @pytest.mark.asyncio
    async def test_scheduler_can_run_again(self, diamond) -> None:
        scheduler = BatchScheduler(diamond, _instant())
        first = await scheduler.run()
        second = await scheduler.run()
        assert first.states == second.states


class TestExecutorFaults:
    @pytest.mark.asyncio
    async def test_exception_becomes_executor_fault(self, diamond, recording_executor) -> None:
        executor = recording_executor(raise_on=["b"])
        with pytest.raises(ExecutorFaultError) as exc_info:
            await BatchScheduler(diamond, executor).run()

        assert exc_info.value.package == "b"
        assert "RuntimeError" in exc_info.value.reason
        assert "d" not in executor.calls

    @pytest.mark.asyncio
    async def test_executor_fault_passes_through(self, make_graph) -> None:
        class BrokenExecutor:
            async def abuild(self, package: str) -> bool:
                raise ExecutorFaultError(package, "builder went away")

        with pytest.raises(ExecutorFaultError, match="builder went away"):
            await BatchScheduler(make_graph(["a"]), BrokenExecutor()).run()

    @pytest.mark.asyncio
    async def test_fault_cancels_builds_in_flight(self, make_graph, recording_executor) -> None:
        executor = recording_executor(raise_on=["a"], delays={"b": 30})
        with pytest.raises(ExecutorFaultError):
            await asyncio.wait_for(BatchScheduler(make_graph(["a", "b"]), executor).run(), 5)
        assert executor.running == 0

    @pytest.mark.asyncio
    async def test_observer_error_aborts_run(self, diamond) -> None:
        class ExplodingObserver:
            async def notify(self, event) -> None:
                raise RuntimeError("observer broke")

        with pytest.raises(RuntimeError, match="observer broke"):
            await BatchScheduler(diamond, _instant(), observer=ExplodingObserver()).run()


class TestSchedulerEvents:
    @pytest.mark.asyncio
    async def test_event_sequence(self, diamond, observer) -> None:
        await BatchScheduler(diamond, _instant(fail=["b"]), observer=observer).run()

        assert isinstance(observer.events[0], BatchStarted)
        assert observer.events[0].total == 4
        assert observer.events[0].leaves == 1
        completed = observer.events[-1]
        assert isinstance(completed, BatchCompleted)
        assert (completed.succeeded, completed.failed, completed.total) == (2, 2, 4)
        assert completed.log_message() == "2 packages succeeded, 2 failed, 4 total"

        assert [e.name for e in observer.of_type(BuildQueued)].count("d") == 0
        (dependency_failed,) = observer.of_type(DependencyFailed)
        assert dependency_failed.name == "d"
        assert dependency_failed.failed_dependency == "b"

    @pytest.mark.asyncio
    async def test_started_precedes_result(self, diamond, observer) -> None:
        await BatchScheduler(diamond, _instant(), workers=2, observer=observer).run()

        position = {
            (type(event), getattr(event, "name", None)): index
            for index, event in enumerate(observer.events)
        }
        for name in "abcd":
            assert position[(BuildQueued, name)] < position[(BuildStarted, name)]
            assert position[(BuildStarted, name)] < position[(BuildSucceeded, name)]


class TestSchedulerInvariants:
    def _scheduler(self, diamond) -> BatchScheduler:
        scheduler = BatchScheduler(diamond, _instant())
        scheduler._states = dict.fromkeys(diamond.names, BuildState.PENDING)
        return scheduler

    def test_illegal_transition(self, diamond) -> None:
        scheduler = self._scheduler(diamond)
        with pytest.raises(SchedulerInvariantError, match="BUG: illegal transition"):
            scheduler._transition("a", BuildState.SUCCEEDED)

    def test_terminal_state_is_final(self, diamond) -> None:
        scheduler = self._scheduler(diamond)
        scheduler._transition("a", BuildState.FAILED_BY_DEPENDENCY)
        with pytest.raises(SchedulerInvariantError):
            scheduler._transition("a", BuildState.READY)

    def test_unknown_package(self, diamond) -> None:
        scheduler = self._scheduler(diamond)
        with pytest.raises(SchedulerInvariantError, match="unknown package"):
            scheduler._transition("zz", BuildState.READY)

    @pytest.mark.asyncio
    async def test_cascade_into_built_package(self, diamond) -> None:
        scheduler = self._scheduler(diamond)
        scheduler._states["d"] = BuildState.SUCCEEDED
        with pytest.raises(SchedulerInvariantError) as exc_info:
            await scheduler._mark_failed("b")
        assert exc_info.value.package == "d"
