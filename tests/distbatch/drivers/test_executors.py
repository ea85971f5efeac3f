"""Tests for the simulated and command build executors."""

import asyncio
import os
import shlex
import sys
from pathlib import Path

import pytest

from distbatch.core.config.models import ExecutorConfig
from distbatch.core.exceptions import ConfigurationError, ExecutorFaultError, ValidationError
from distbatch.core.domain.graph import BuildGraph
from distbatch.core.ports.executor import BuildExecutor
from distbatch.core.scheduling.scheduler import BatchScheduler
from distbatch.drivers.executors import (
    CommandBuildExecutor,
    SimulatedBuildExecutor,
    create_executor,
)

# Exits 1 for packages whose name starts with "bad", echoes the name otherwise
_BUILD_SCRIPT = (
    "import os, sys; "
    "print('building', sys.argv[1], os.environ.get('DISTBATCH_TEST_FLAVOR', '')); "
    "sys.exit(1 if sys.argv[1].startswith('bad') else 0)"
)

# Writes its pid to argv[1], then hangs
_HANGING_BUILD_SCRIPT = (
    "import os, sys, time; "
    "open(sys.argv[1], 'w').write(str(os.getpid())); "
    "time.sleep(30)"
)


async def _wait_for_pid(pid_file: Path) -> int:
    while not (pid_file.exists() and pid_file.read_text()):
        await asyncio.sleep(0.01)
    return int(pid_file.read_text())


class TestSimulatedBuildExecutor:
    @pytest.mark.asyncio
    async def test_outcomes(self) -> None:
        executor = SimulatedBuildExecutor(min_duration=0, max_duration=0, fail=["b-1"])
        assert await executor.abuild("a-1") is True
        assert await executor.abuild("b-1") is False
        assert executor.calls == ["a-1", "b-1"]

    def test_implements_port(self) -> None:
        assert isinstance(SimulatedBuildExecutor(), BuildExecutor)

    @pytest.mark.parametrize(("low", "high"), [(-1, 1), (0.5, 0.1)])
    def test_invalid_durations(self, low: float, high: float) -> None:
        with pytest.raises(ValidationError):
            SimulatedBuildExecutor(min_duration=low, max_duration=high)

    def test_seeded_durations_repeat(self) -> None:
        first = SimulatedBuildExecutor(seed=7)
        second = SimulatedBuildExecutor(seed=7)
        assert [first._random.random() for _ in range(3)] == [
            second._random.random() for _ in range(3)
        ]


class TestCommandBuildExecutor:
    def test_argv_placeholder(self) -> None:
        executor = CommandBuildExecutor(["distri", "build", "-pkg={package}"])
        assert executor.argv("bison-3.0.5-3") == ["distri", "build", "-pkg=bison-3.0.5-3"]

    def test_argv_appends_name(self) -> None:
        assert CommandBuildExecutor(["make-build"]).argv("a-1") == ["make-build", "a-1"]

    def test_empty_command(self) -> None:
        with pytest.raises(ValidationError, match="command"):
            CommandBuildExecutor([])

    def test_implements_port(self) -> None:
        assert isinstance(CommandBuildExecutor(["true"]), BuildExecutor)

    @pytest.mark.asyncio
    async def test_exit_status_decides(self, tmp_path: Path) -> None:
        executor = CommandBuildExecutor([sys.executable, "-c", _BUILD_SCRIPT], cwd=tmp_path)
        assert await executor.abuild("good-1") is True
        assert await executor.abuild("bad-1") is False

    @pytest.mark.asyncio
    async def test_output_written_to_log_dir(self, tmp_path: Path) -> None:
        log_dir = tmp_path / "logs"
        executor = CommandBuildExecutor(
            [sys.executable, "-c", _BUILD_SCRIPT, "{package}"],
            log_dir=log_dir,
            env={"DISTBATCH_TEST_FLAVOR": "static"},
        )
        await executor.abuild("zlib-1.2.11-3")
        assert (log_dir / "zlib-1.2.11-3.log").read_text().strip() == (
            "building zlib-1.2.11-3 static"
        )

    @pytest.mark.asyncio
    async def test_missing_program_is_executor_fault(self, tmp_path: Path) -> None:
        executor = CommandBuildExecutor([str(tmp_path / "no-such-builder")])
        with pytest.raises(ExecutorFaultError) as exc_info:
            await executor.abuild("a-1")
        assert exc_info.value.package == "a-1"

    @pytest.mark.asyncio
    async def test_cancel_kills_running_build(self, tmp_path: Path) -> None:
        pid_file = tmp_path / "build.pid"
        executor = CommandBuildExecutor(
            [sys.executable, "-c", _HANGING_BUILD_SCRIPT, str(pid_file), "{package}"]
        )
        task = asyncio.create_task(executor.abuild("b-1"))
        pid = await asyncio.wait_for(_wait_for_pid(pid_file), 10)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        with pytest.raises(ProcessLookupError):
            os.kill(pid, 0)

    @pytest.mark.asyncio
    async def test_executor_fault_stops_other_builds(self, tmp_path: Path) -> None:
        pid_file = tmp_path / "build.pid"
        command = CommandBuildExecutor(
            [sys.executable, "-c", _HANGING_BUILD_SCRIPT, str(pid_file), "{package}"]
        )

        class FaultyExecutor:
            """Builds b-1 for real; a-1 breaks once b-1 is running."""

            async def abuild(self, package: str) -> bool:
                if package == "b-1":
                    return await command.abuild(package)
                await _wait_for_pid(pid_file)
                raise RuntimeError("build host went away")

        graph = BuildGraph()
        graph.add_node("a-1")
        graph.add_node("b-1")
        with pytest.raises(ExecutorFaultError, match="a-1"):
            await asyncio.wait_for(BatchScheduler(graph, FaultyExecutor(), workers=2).run(), 10)

        with pytest.raises(ProcessLookupError):
            os.kill(int(pid_file.read_text()), 0)


class TestCreateExecutor:
    def test_simulated_default(self) -> None:
        executor = create_executor(ExecutorConfig(fail=("a-1",), seed=1))
        assert isinstance(executor, SimulatedBuildExecutor)
        assert executor.fail == frozenset({"a-1"})

    def test_command(self, tmp_path: Path) -> None:
        config = ExecutorConfig(
            kind="command", command=tuple(shlex.split("distri build")), log_dir="logs"
        )
        executor = create_executor(config, cwd=tmp_path)
        assert isinstance(executor, CommandBuildExecutor)
        assert executor.cwd == tmp_path
        assert executor.log_dir == Path("logs")

    def test_command_kind_needs_command(self) -> None:
        with pytest.raises(ConfigurationError, match="requires a command"):
            create_executor(ExecutorConfig(kind="command"))
