"""TOML configuration loader for distbatch."""

from __future__ import annotations

import os
import re
import shlex
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from distbatch.core.config.models import (
    DistBatchConfig,
    ExecutorConfig,
    LoggingConfig,
    SchedulerConfig,
)
from distbatch.core.exceptions import ConfigurationError, ValidationError
from distbatch.core.logging import get_logger

# Constants for boolean environment variable parsing
_TRUTHY_VALUES = frozenset({"true", "1", "yes", "on", "enabled"})
_FALSY_VALUES = frozenset({"false", "0", "no", "off", "disabled"})

CONFIG_FILE_NAMES = ("distbatch.toml", "pyproject.toml", ".distbatch.toml")

logger = get_logger(__name__)


def _parse_bool_env(value: str) -> bool:
    """Parse boolean from environment variable value.

    Raises
    ------
    ValueError
        If value is not a recognized boolean string
    """
    normalized = value.lower().strip()
    if normalized in _TRUTHY_VALUES:
        return True
    if normalized in _FALSY_VALUES:
        return False
    expected = sorted(_TRUTHY_VALUES | _FALSY_VALUES)
    raise ValueError(f"Invalid boolean value: {value!r}. Expected one of: {expected}")


@lru_cache(maxsize=32)
def _load_and_parse_cached(path_str: str) -> DistBatchConfig:
    """Cached configuration loader."""
    loader = ConfigLoader()
    return loader._load_and_parse(Path(path_str))


class ConfigLoader:
    """Loads and processes distbatch configuration from TOML files."""

    ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")

    def load_from_toml(self, path: str | Path | None = None) -> DistBatchConfig:
        """Load configuration from TOML file.

        Parameters
        ----------
        path : str | Path | None
            Path to TOML file. If None, searches for distbatch.toml,
            pyproject.toml or .distbatch.toml

        Returns
        -------
        DistBatchConfig
            Parsed configuration with environment variables substituted
        """
        config_path = self._find_config_file(path)
        return _load_and_parse_cached(str(config_path.absolute()))

    def _load_and_parse(self, config_path: Path) -> DistBatchConfig:
        """Load and parse configuration file."""
        logger.info("Loading configuration from {path}", path=str(config_path))

        try:
            with config_path.open("rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(str(config_path), f"invalid TOML: {e}") from e

        if "tool" in data and "distbatch" in data.get("tool", {}):
            section = data["tool"]["distbatch"]
        elif config_path.name == "pyproject.toml":
            logger.warning("No [tool.distbatch] section found in pyproject.toml, using defaults")
            section = {}
        else:
            # Flat format (top-level keys)
            section = data

        section = self._substitute_env_vars(section)
        return self._parse_config(section)

    def _find_config_file(self, path: str | Path | None) -> Path:
        """Find configuration file.

        Raises
        ------
        FileNotFoundError
            If no configuration file is found
        """
        if path:
            config_path = Path(path)
            if not config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            return config_path

        if env_path := os.getenv("DISTBATCH_CONFIG_PATH"):
            config_path = Path(env_path)
            if config_path.exists():
                logger.debug("Using config from DISTBATCH_CONFIG_PATH: {path}", path=env_path)
                return config_path
            logger.warning("DISTBATCH_CONFIG_PATH set but file not found: {path}", path=env_path)

        for name in CONFIG_FILE_NAMES:
            candidate = Path(name)
            if candidate.exists():
                return candidate

        raise FileNotFoundError(
            f"No configuration file found. Searched for: {', '.join(CONFIG_FILE_NAMES)}"
        )

    def _substitute_env_vars(self, data: Any) -> Any:
        """Recursively replace ``${VAR}`` with environment variable values.

        Unknown variables keep their placeholder.
        """
        if isinstance(data, str):

            def replacer(match: re.Match[str]) -> str:
                var_name = match.group(1)
                value = os.environ.get(var_name)
                if value is None:
                    logger.debug(
                        "Environment variable {var} not found, keeping placeholder", var=var_name
                    )
                    return match.group(0)
                return value

            return self.ENV_VAR_PATTERN.sub(replacer, data)

        if isinstance(data, dict):
            return {key: self._substitute_env_vars(value) for key, value in data.items()}

        if isinstance(data, list):
            return [self._substitute_env_vars(item) for item in data]

        return data

    def _parse_config(self, data: dict[str, Any]) -> DistBatchConfig:
        """Parse a ``[tool.distbatch]`` table into DistBatchConfig.

        Raises
        ------
        ConfigurationError
            If a section has the wrong shape or an invalid value
        """
        root = str(data.get("root", "."))
        if env_root := os.getenv("DISTBATCH_ROOT"):
            logger.debug("Overriding root from env: {root}", root=env_root)
            root = env_root

        try:
            config = DistBatchConfig(
                root=root,
                pkgs_dir=str(data.get("pkgs_dir", "pkgs")),
                descriptor=str(data.get("descriptor", "build.yaml")),
                builders=self._parse_builders(data.get("builders", {})),
                scheduler=self._parse_scheduler_config(self._table(data, "scheduler")),
                executor=self._parse_executor_config(self._table(data, "executor")),
                logging=self._parse_logging_config(self._table(data, "logging")),
            )
        except ValidationError as e:
            raise ConfigurationError(e.field.split(".")[0], str(e)) from e
        except (TypeError, ValueError) as e:
            raise ConfigurationError("distbatch", str(e)) from e

        logger.debug(
            "Loaded configuration: {workers} workers, {builders} builder kinds",
            workers=config.scheduler.workers,
            builders=len(config.builders),
        )
        return config

    @staticmethod
    def _table(data: dict[str, Any], name: str) -> dict[str, Any]:
        value = data.get(name, {})
        if not isinstance(value, dict):
            raise ConfigurationError(name, "must be a table")
        return value

    @staticmethod
    def _parse_builders(data: Any) -> dict[str, list[str]]:
        if not isinstance(data, dict):
            raise ConfigurationError("builders", "must be a table of lists")
        builders: dict[str, list[str]] = {}
        for kind, deps in data.items():
            if not isinstance(deps, list) or not all(isinstance(dep, str) for dep in deps):
                raise ConfigurationError("builders", f"'{kind}' must be a list of package names")
            builders[kind] = list(deps)
        return builders

    def _parse_scheduler_config(self, data: dict[str, Any]) -> SchedulerConfig:
        """Parse scheduler settings; ``DISTBATCH_WORKERS`` takes precedence."""
        workers = data.get("workers", 8)
        if env_workers := os.getenv("DISTBATCH_WORKERS"):
            try:
                workers = int(env_workers)
            except ValueError as e:
                raise ConfigurationError("scheduler", f"invalid DISTBATCH_WORKERS: {e}") from e
            logger.debug("Overriding workers from env: {workers}", workers=workers)
        return SchedulerConfig(workers=workers)

    def _parse_executor_config(self, data: dict[str, Any]) -> ExecutorConfig:
        command = data.get("command", ())
        if isinstance(command, str):
            try:
                command = shlex.split(command)
            except ValueError as e:
                raise ConfigurationError("executor", f"invalid command: {e}") from e
        return ExecutorConfig(
            kind=data.get("kind", "simulated"),
            command=tuple(command),
            log_dir=data.get("log_dir"),
            fail=tuple(data.get("fail", ())),
            min_duration=float(data.get("min_duration", 0.01)),
            max_duration=float(data.get("max_duration", 0.11)),
            seed=data.get("seed"),
        )

    def _parse_logging_config(self, logging_data: dict[str, Any]) -> LoggingConfig:
        """Parse logging configuration with environment variable overrides.

        Environment variables take precedence over TOML configuration:
        - DISTBATCH_LOG_LEVEL: Log level
        - DISTBATCH_LOG_FORMAT: Output format (console, json, structured, rich)
        - DISTBATCH_LOG_FILE: Optional file path for log output
        - DISTBATCH_LOG_COLOR: Use color output (true/false)
        """
        level = logging_data.get("level", "INFO")
        format_type = logging_data.get("format", "structured")
        output_file = logging_data.get("output_file")
        use_color = logging_data.get("use_color", True)
        include_timestamp = logging_data.get("include_timestamp", True)

        if env_level := os.getenv("DISTBATCH_LOG_LEVEL"):
            level = env_level
            logger.debug("Overriding log level from env: {level}", level=level)

        if env_format := os.getenv("DISTBATCH_LOG_FORMAT"):
            format_type = env_format.lower()
            logger.debug("Overriding log format from env: {format}", format=format_type)

        if env_file := os.getenv("DISTBATCH_LOG_FILE"):
            output_file = env_file
            logger.debug("Overriding log file from env: {file}", file=output_file)

        if env_color := os.getenv("DISTBATCH_LOG_COLOR"):
            try:
                use_color = _parse_bool_env(env_color)
            except ValueError as e:
                logger.warning("Invalid DISTBATCH_LOG_COLOR value: {error}", error=str(e))

        return LoggingConfig(
            level=str(level).upper(),  # type: ignore[arg-type]
            format=format_type,
            output_file=output_file,
            use_color=use_color,
            include_timestamp=include_timestamp,
        )


def load_config(path: str | Path | None = None) -> DistBatchConfig:
    """Load configuration from TOML file or return defaults.

    An explicit ``path`` that does not exist is an error; when searching,
    a missing file simply means defaults.

    Raises
    ------
    FileNotFoundError
        If ``path`` is given and does not exist
    ConfigurationError
        If the file content is invalid
    """
    loader = ConfigLoader()
    if path:
        return loader.load_from_toml(path)
    try:
        return loader.load_from_toml(None)
    except FileNotFoundError:
        logger.debug("No configuration file found, using defaults")
        return get_default_config()


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when configuration files changed on disk.
    """
    _load_and_parse_cached.cache_clear()


def get_default_config() -> DistBatchConfig:
    """Default configuration, with the ``DISTBATCH_*`` environment overrides applied."""
    return ConfigLoader()._parse_config({})


__all__ = ["ConfigLoader", "clear_config_cache", "get_default_config", "load_config"]
