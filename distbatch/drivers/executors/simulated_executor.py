"""Stand-in executor that pretends to build.

Useful for exercising a package tree's scheduling (ordering, cycle breaks,
failure cascades) without compiling anything.
"""

import asyncio
import random
from collections.abc import Iterable

from distbatch.core.exceptions import ValidationError
from distbatch.core.logging import get_logger

logger = get_logger(__name__)


class SimulatedBuildExecutor:
    """Sleeps for a random duration and reports the configured outcome.

    Parameters
    ----------
    min_duration : float, default=0.01
        Shortest simulated build, in seconds
    max_duration : float, default=0.11
        Longest simulated build, in seconds
    fail : Iterable[str]
        Full names of packages whose build should fail
    seed : int | None
        Seed for the duration generator

    Examples
    --------
    >>> executor = SimulatedBuildExecutor(min_duration=0, max_duration=0, fail=["b-1"])
    >>> asyncio.run(executor.abuild("b-1"))
    False
    >>> executor.calls
    ['b-1']
    """

    def __init__(
        self,
        min_duration: float = 0.01,
        max_duration: float = 0.11,
        fail: Iterable[str] = (),
        seed: int | None = None,
    ) -> None:
        if min_duration < 0 or max_duration < min_duration:
            raise ValidationError(
                "max_duration",
                "durations must satisfy 0 <= min_duration <= max_duration",
                (min_duration, max_duration),
            )
        self.min_duration = min_duration
        self.max_duration = max_duration
        self.fail = frozenset(fail)
        self._random = random.Random(seed)  # nosec B311 - not used for security
        self.calls: list[str] = []

    async def abuild(self, package: str) -> bool:
        self.calls.append(package)
        duration = self._random.uniform(self.min_duration, self.max_duration)
        logger.debug("build of {package} is taking {duration:.3f}s", package=package, duration=duration)
        await asyncio.sleep(duration)
        return package not in self.fail
