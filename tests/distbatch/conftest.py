"""Shared fixtures for distbatch tests."""

import asyncio
from collections.abc import Callable, Iterable
from pathlib import Path

import pytest
import yaml

from distbatch.core.domain.descriptor import PackageDescriptor
from distbatch.core.domain.graph import BuildGraph


class RecordingExecutor:
    """Executor double that records what the scheduler asked it to do.

    Every call records which packages had already finished when it started,
    and how many builds were running at the same time.
    """

    def __init__(
        self,
        fail: Iterable[str] = (),
        raise_on: Iterable[str] = (),
        delay: float = 0.0,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.fail = set(fail)
        self.raise_on = set(raise_on)
        self.delay = delay
        self.delays = delays or {}
        self.calls: list[str] = []
        self.finished: list[str] = []
        self.done_before: dict[str, frozenset[str]] = {}
        self.running = 0
        self.max_running = 0

    async def abuild(self, package: str) -> bool:
        self.calls.append(package)
        self.done_before[package] = frozenset(self.finished)
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            if package in self.raise_on:
                raise RuntimeError(f"sandbox for {package} is gone")
            await asyncio.sleep(self.delays.get(package, self.delay))
        finally:
            self.running -= 1
        self.finished.append(package)
        return package not in self.fail


class CollectingObserver:
    """Observer double keeping every event it is sent."""

    def __init__(self) -> None:
        self.events: list = []

    async def notify(self, event) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> list:
        return [event for event in self.events if isinstance(event, event_type)]


def _graph(edges: Iterable[tuple[str, str]], names: Iterable[str]) -> BuildGraph:
    graph = BuildGraph()
    for name in names:
        graph.add_node(name)
    for package, dependency in edges:
        graph.add_edge(package, dependency)
    return graph


@pytest.fixture
def make_graph() -> Callable[..., BuildGraph]:
    """Factory: ``make_graph(["a", "b"], [("b", "a")])``."""

    def factory(names: Iterable[str], edges: Iterable[tuple[str, str]] = ()) -> BuildGraph:
        return _graph(edges, names)

    return factory


@pytest.fixture
def diamond() -> BuildGraph:
    """``d`` needs ``b`` and ``c``, which both need ``a``."""
    return _graph([("b", "a"), ("c", "a"), ("d", "b"), ("d", "c")], ["a", "b", "c", "d"])


@pytest.fixture
def descriptor() -> Callable[..., PackageDescriptor]:
    """Factory for package descriptors with version ``1`` by default."""

    def factory(package: str, version: str = "1", **deps: list[str]) -> PackageDescriptor:
        return PackageDescriptor(package=package, version=version, **deps)

    return factory


@pytest.fixture
def recording_executor() -> Callable[..., RecordingExecutor]:
    return RecordingExecutor


@pytest.fixture
def observer() -> CollectingObserver:
    return CollectingObserver()


@pytest.fixture
def pkgs_tree(tmp_path: Path) -> Callable[[dict[str, dict]], Path]:
    """Write ``{package: descriptor mapping}`` as ``<root>/pkgs/<package>/build.yaml``.

    Returns the distribution root.
    """

    def factory(packages: dict[str, dict]) -> Path:
        pkgs = tmp_path / "pkgs"
        pkgs.mkdir(exist_ok=True)
        for package, content in packages.items():
            package_dir = pkgs / package
            package_dir.mkdir()
            (package_dir / "build.yaml").write_text(yaml.safe_dump(content))
        return tmp_path

    return factory
