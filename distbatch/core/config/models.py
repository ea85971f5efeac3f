"""Configuration data models for distbatch."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from distbatch.core.exceptions import ValidationError

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("console", "json", "structured", "rich")
EXECUTOR_KINDS = ("simulated", "command")


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Logging configuration.

    Attributes
    ----------
    level : str, default="INFO"
        Log level (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL)
    format : str, default="structured"
        Output format (console, json, structured, rich)
    output_file : str | None, default=None
        Optional file path to write JSON log records to
    use_color : bool, default=True
        Use ANSI color codes (auto-disabled for non-TTY)
    include_timestamp : bool, default=True
        Include timestamp in log output

    Examples
    --------
    ```toml
    [tool.distbatch.logging]
    level = "DEBUG"
    format = "rich"
    ```
    """

    level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "structured", "rich"] = "structured"
    output_file: str | None = None
    use_color: bool = True
    include_timestamp: bool = True

    def __post_init__(self) -> None:
        if self.level not in LOG_LEVELS:
            raise ValidationError("logging.level", f"must be one of {LOG_LEVELS}", self.level)
        if self.format not in LOG_FORMATS:
            raise ValidationError("logging.format", f"must be one of {LOG_FORMATS}", self.format)


@dataclass(frozen=True, slots=True)
class SchedulerConfig:
    """Scheduler settings.

    Attributes
    ----------
    workers : int, default=8
        Number of builds running in parallel
    """

    workers: int = 8

    def __post_init__(self) -> None:
        if isinstance(self.workers, bool) or not isinstance(self.workers, int):
            raise ValidationError("scheduler.workers", "must be an integer", self.workers)
        if self.workers < 1:
            raise ValidationError("scheduler.workers", "must be positive", self.workers)


@dataclass(frozen=True, slots=True)
class ExecutorConfig:
    """Build executor selection and settings.

    Attributes
    ----------
    kind : str, default="simulated"
        ``simulated`` sleeps instead of building, ``command`` runs a program
    command : tuple[str, ...]
        argv template for ``command``; ``{package}`` is replaced by the
        package's full name
    log_dir : str | None
        Directory receiving one ``<package>.log`` per command build
    fail : tuple[str, ...]
        Packages the simulated executor reports as failed
    min_duration : float
        Shortest simulated build, in seconds
    max_duration : float
        Longest simulated build, in seconds
    seed : int | None
        Random seed for simulated build durations

    Examples
    --------
    ```toml
    [tool.distbatch.executor]
    kind = "command"
    command = ["distri", "build", "-pkg={package}"]
    log_dir = "build/logs"
    ```
    """

    kind: Literal["simulated", "command"] = "simulated"
    command: tuple[str, ...] = ()
    log_dir: str | None = None
    fail: tuple[str, ...] = ()
    min_duration: float = 0.01
    max_duration: float = 0.11
    seed: int | None = None

    def __post_init__(self) -> None:
        if self.kind not in EXECUTOR_KINDS:
            raise ValidationError("executor.kind", f"must be one of {EXECUTOR_KINDS}", self.kind)
        if self.min_duration < 0 or self.max_duration < self.min_duration:
            raise ValidationError(
                "executor.max_duration",
                "durations must satisfy 0 <= min_duration <= max_duration",
                (self.min_duration, self.max_duration),
            )


@dataclass(frozen=True, slots=True)
class DistBatchConfig:
    """Complete distbatch configuration.

    Attributes
    ----------
    root : str
        Root of the distribution tree
    pkgs_dir : str
        Package directory, relative to ``root`` unless absolute
    descriptor : str
        File name of the build descriptor inside each package directory
    builders : dict[str, list[str]]
        Builder kind -> packages every build of that kind needs
    scheduler : SchedulerConfig
    executor : ExecutorConfig
    logging : LoggingConfig

    Examples
    --------
    TOML configuration in pyproject.toml:

    ```toml
    [tool.distbatch]
    root = "${DISTRIROOT}"

    [tool.distbatch.scheduler]
    workers = 16

    [tool.distbatch.builders]
    c = ["gcc-8.2.0-3", "make-4.2.1-3", "bash-4.4.18-3"]
    perl = ["perl-5.28.0-5"]
    ```
    """

    root: str = "."
    pkgs_dir: str = "pkgs"
    descriptor: str = "build.yaml"
    builders: dict[str, list[str]] = field(default_factory=dict)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def packages_path(self) -> Path:
        """Absolute-or-root-relative path of the package directory."""
        return Path(self.root) / self.pkgs_dir
