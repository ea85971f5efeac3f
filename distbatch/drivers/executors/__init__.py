"""Build executor implementations."""

from pathlib import Path

from distbatch.core.config.models import ExecutorConfig
from distbatch.core.exceptions import ConfigurationError
from distbatch.core.ports.executor import BuildExecutor
from distbatch.drivers.executors.command_executor import CommandBuildExecutor
from distbatch.drivers.executors.simulated_executor import SimulatedBuildExecutor


def create_executor(config: ExecutorConfig, cwd: str | Path | None = None) -> BuildExecutor:
    """Instantiate the executor selected by ``config.kind``.

    Raises
    ------
    ConfigurationError
        If the kind is unknown or its settings are incomplete
    """
    if config.kind == "simulated":
        return SimulatedBuildExecutor(
            min_duration=config.min_duration,
            max_duration=config.max_duration,
            fail=config.fail,
            seed=config.seed,
        )
    if config.kind == "command":
        if not config.command:
            raise ConfigurationError("executor", "kind 'command' requires a command")
        return CommandBuildExecutor(config.command, cwd=cwd, log_dir=config.log_dir)
    raise ConfigurationError("executor", f"unknown kind '{config.kind}'")


__all__ = ["CommandBuildExecutor", "SimulatedBuildExecutor", "create_executor"]
