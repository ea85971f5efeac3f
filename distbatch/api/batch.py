"""Batch API - plan and run a whole batch from descriptors or configuration.

Planning (graph construction and cycle breaking) happens completely before
any build starts, so descriptor problems surface without side effects.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from distbatch.core.config.models import DistBatchConfig
from distbatch.core.domain.cycles import CycleResolution, resolve_cycles
from distbatch.core.domain.descriptor import PackageDescriptor
from distbatch.core.domain.graph import BuildGraph, build_graph
from distbatch.core.logging import get_logger
from distbatch.core.ports.executor import BuildExecutor
from distbatch.core.ports.observer import BuildObserver
from distbatch.core.scheduling.models import BuildSummary
from distbatch.core.scheduling.scheduler import DEFAULT_WORKERS, BatchScheduler
from distbatch.loaders.descriptor_loader import load_descriptors

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class BatchPlan:
    """A build graph ready for scheduling.

    Attributes
    ----------
    graph : BuildGraph
        The graph as declared by the descriptors
    resolution : CycleResolution
        Acyclic graph to schedule plus the packages needing a cycle break
    """

    graph: BuildGraph
    resolution: CycleResolution

    @property
    def schedulable(self) -> BuildGraph:
        return self.resolution.graph

    @property
    def broken(self) -> tuple[str, ...]:
        return self.resolution.broken


@dataclass(frozen=True, slots=True)
class BatchReport:
    """Everything a caller needs to report on a finished batch."""

    summary: BuildSummary
    broken: tuple[str, ...] = ()


def plan_batch(descriptors: Iterable[PackageDescriptor]) -> BatchPlan:
    """Build the dependency graph and break its cycles.

    Raises
    ------
    DuplicatePackageError
        If two descriptors share a ``<package>-<version>`` name.
    UnresolvedDependencyError
        If a descriptor references a package that was not loaded.
    UnbreakableCycleError
        If cycle breaking does not yield an acyclic graph.
    """
    graph = build_graph(descriptors)
    return BatchPlan(graph=graph, resolution=resolve_cycles(graph))


def load_plan(config: DistBatchConfig) -> BatchPlan:
    """Load descriptors from the configured tree and plan the batch."""
    descriptors = load_descriptors(
        config.packages_path, descriptor_name=config.descriptor, builders=config.builders
    )
    return plan_batch(descriptors)


async def run_plan(
    plan: BatchPlan,
    executor: BuildExecutor,
    workers: int = DEFAULT_WORKERS,
    observer: BuildObserver | None = None,
) -> BatchReport:
    """Schedule an existing plan."""
    if plan.broken:
        logger.info(
            "Building {count} packages without their dependencies to break cycles: {names}",
            count=len(plan.broken),
            names=", ".join(plan.broken),
        )
    scheduler = BatchScheduler(plan.schedulable, executor, workers=workers, observer=observer)
    summary = await scheduler.run()
    return BatchReport(summary=summary, broken=plan.broken)


async def run_batch(
    descriptors: Iterable[PackageDescriptor],
    executor: BuildExecutor,
    workers: int = DEFAULT_WORKERS,
    observer: BuildObserver | None = None,
) -> BatchReport:
    """Plan and build a set of packages.

    Returns
    -------
    BatchReport
        Final state of every package. Build failures are reported here, not
        raised.

    Raises
    ------
    GraphError
        If planning fails; no build is started.
    ExecutorFaultError
        If the executor broke down during the run.

    Examples
    --------
    Example usage::

        report = await run_batch(descriptors, SimulatedBuildExecutor(), workers=8)
        print(f"{report.summary.succeeded} packages succeeded")
    """
    plan = plan_batch(descriptors)
    return await run_plan(plan, executor, workers=workers, observer=observer)


__all__ = ["BatchPlan", "BatchReport", "load_plan", "plan_batch", "run_batch", "run_plan"]
