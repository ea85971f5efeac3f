"""Executor that builds each package by running an external command.

The actual build (sandboxing, staging, image creation) belongs to that
command, e.g. ``distri build -pkg={package}``. Only its exit status matters
here.
"""

import asyncio
import os
from collections.abc import Mapping, Sequence
from pathlib import Path

from distbatch.core.exceptions import ExecutorFaultError, ValidationError
from distbatch.core.logging import get_logger

logger = get_logger(__name__)

PACKAGE_PLACEHOLDER = "{package}"

# Lines of build output repeated in the log when a build fails
_FAILURE_TAIL_LINES = 20


class CommandBuildExecutor:
    """Runs one subprocess per build.

    Parameters
    ----------
    command : Sequence[str]
        argv template; every ``{package}`` is replaced by the package's
        full name. If no item contains the placeholder the name is appended.
    cwd : str | Path | None
        Working directory of the build command
    log_dir : str | Path | None
        If set, each build's combined output goes to ``<log_dir>/<package>.log``
    env : Mapping[str, str] | None
        Extra environment variables for the build command

    Examples
    --------
    Basic usage::

        executor = CommandBuildExecutor(["distri", "build", "-pkg={package}"], log_dir="logs")
        succeeded = await executor.abuild("bison-3.0.5-3")
    """

    def __init__(
        self,
        command: Sequence[str],
        cwd: str | Path | None = None,
        log_dir: str | Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        if not command:
            raise ValidationError("command", "cannot be empty")
        self.command = tuple(command)
        self.cwd = Path(cwd) if cwd else None
        self.log_dir = Path(log_dir) if log_dir else None
        self.env = dict(env) if env else None

    def argv(self, package: str) -> list[str]:
        """Command line for building ``package``."""
        if not any(PACKAGE_PLACEHOLDER in arg for arg in self.command):
            return [*self.command, package]
        return [arg.replace(PACKAGE_PLACEHOLDER, package) for arg in self.command]

    async def abuild(self, package: str) -> bool:
        """Run the build command.

        Returns
        -------
        bool
            True if the command exited with status 0

        Raises
        ------
        ExecutorFaultError
            If the command cannot be started at all
        """
        argv = self.argv(package)
        env = {**os.environ, **self.env} if self.env else None
        logger.debug("Running {argv}", argv=" ".join(argv))
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=self.cwd,
                env=env,
            )
        except OSError as e:
            raise ExecutorFaultError(package, f"cannot run {argv[0]!r}: {e}") from e

        try:
            stdout, _ = await proc.communicate()
        except asyncio.CancelledError:
            # Batch cancelled: the build must not outlive it
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            logger.debug("Killed build of {package} (pid {pid})", package=package, pid=proc.pid)
            raise
        output = stdout.decode(errors="replace") if stdout else ""

        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            (self.log_dir / f"{package}.log").write_text(output)

        if proc.returncode == 0:
            return True

        tail = "\n".join(output.splitlines()[-_FAILURE_TAIL_LINES:])
        logger.warning(
            "build of {package} exited with status {status}\n{tail}",
            package=package,
            status=proc.returncode,
            tail=tail,
        )
        return False
