"""distbatch - batch builder for source-based distributions.

Builds every package of a distribution tree in dependency order on a bounded
pool of workers, breaking dependency cycles first and skipping packages whose
dependencies failed.
"""

# Version is defined in pyproject.toml and read dynamically
try:
    from importlib.metadata import version

    __version__ = version("distbatch")
except Exception:
    __version__ = "0.0.0.dev0"  # Fallback for development installs

from distbatch.api.batch import BatchPlan, BatchReport, load_plan, plan_batch, run_batch, run_plan
from distbatch.core.domain import BuildGraph, PackageDescriptor, build_graph, resolve_cycles
from distbatch.core.ports import BuildExecutor, BuildObserver
from distbatch.core.scheduling import BatchScheduler, BuildState, BuildSummary
from distbatch.drivers.executors import (
    CommandBuildExecutor,
    SimulatedBuildExecutor,
    create_executor,
)

__all__ = [
    "BatchPlan",
    "BatchReport",
    "BatchScheduler",
    "BuildExecutor",
    "BuildGraph",
    "BuildObserver",
    "BuildState",
    "BuildSummary",
    "CommandBuildExecutor",
    "PackageDescriptor",
    "SimulatedBuildExecutor",
    "__version__",
    "build_graph",
    "create_executor",
    "load_plan",
    "plan_batch",
    "resolve_cycles",
    "run_batch",
    "run_plan",
]
