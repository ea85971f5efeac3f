"""Port interface for batch progress observers."""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from distbatch.core.scheduling.events import Event


@runtime_checkable
class BuildObserver(Protocol):
    """Receives scheduling events.

    Observers are notified by the coordinator only, one event at a time, so
    they never see concurrent calls. They are for reporting: an exception
    raised here aborts the batch like any other coordinator error.
    """

    async def notify(self, event: "Event") -> None:
        """Handle one event."""
        ...


__all__ = ["BuildObserver"]
