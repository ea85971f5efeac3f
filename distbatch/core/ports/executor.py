"""Port interface for build execution backends.

The scheduler only knows packages by name. Whatever turns a name into a
built artifact (a local sandboxed build, a remote builder, a stand-in for
tests) implements BuildExecutor.
"""

from abc import abstractmethod
from typing import Protocol, runtime_checkable


@runtime_checkable
class BuildExecutor(Protocol):
    """Builds one package per call.

    Contract
    --------
    - ``abuild`` is called at most once per package per batch and is never
      retried by the scheduler.
    - It must be safe to run concurrently for distinct packages.
    - Returning ``False`` reports a build failure: the package and everything
      depending on it are dropped, the batch carries on.
    - Raising reports that the executor itself is broken: the whole batch is
      cancelled.
    - No timeout is applied by the scheduler; an executor that needs one has
      to impose it before reporting.
    """

    @abstractmethod
    async def abuild(self, package: str) -> bool:
        """Build ``package`` (a ``<package>-<version>`` name).

        Returns
        -------
        bool
            True if the build succeeded
        """
        ...


__all__ = ["BuildExecutor"]
