"""High-level entry points shared by the CLI and library users."""

from distbatch.api.batch import (
    BatchPlan,
    BatchReport,
    load_plan,
    plan_batch,
    run_batch,
    run_plan,
)

__all__ = ["BatchPlan", "BatchReport", "load_plan", "plan_batch", "run_batch", "run_plan"]
