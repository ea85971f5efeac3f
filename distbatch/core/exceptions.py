"""Core exception hierarchy for distbatch.

All distbatch exceptions inherit from DistBatchError. Graph construction and
cycle resolution errors are raised before any build starts; executor faults
and invariant breaches abort a running batch. An ordinary build failure is not
an exception at all: it is reported by the executor as ``False`` and tracked
as a package state.
"""

from __future__ import annotations

from collections.abc import Sequence

# ============================================================================
# Base Exception
# ============================================================================


class DistBatchError(Exception):
    """Base exception for all distbatch errors.

    Catch this to handle every error raised by the batch builder.
    """

    pass


# ============================================================================
# Configuration & Validation Errors
# ============================================================================


class ConfigurationError(DistBatchError):
    """Raised when configuration is invalid or missing.

    Examples
    --------
    Example usage::

        raise ConfigurationError("executor", "unknown kind 'remote'")
    """

    def __init__(self, component: str, reason: str) -> None:
        """Initialize configuration error.

        Args
        ----
            component: Name of the component with invalid configuration
            reason: Explanation of what's wrong
        """
        super().__init__(f"Configuration error in '{component}': {reason}")
        self.component = component
        self.reason = reason


class ValidationError(DistBatchError):
    """Raised when a value fails validation.

    Examples
    --------
    Example usage::

        raise ValidationError("workers", "must be positive", value=0)
    """

    def __init__(self, field: str, constraint: str, value: object = None) -> None:
        """Initialize validation error.

        Args
        ----
            field: Name of the field that failed validation
            constraint: Description of the validation constraint
            value: The invalid value (optional)
        """
        if value is not None:
            msg = f"Validation failed for '{field}': {constraint} (got {value!r})"
        else:
            msg = f"Validation failed for '{field}': {constraint}"
        super().__init__(msg)
        self.field = field
        self.constraint = constraint
        self.value = value


class ResourceNotFoundError(DistBatchError):
    """Raised when a required resource cannot be found.

    Examples
    --------
    Example usage::

        raise ResourceNotFoundError("packages directory", "/srv/distri/pkgs")
    """

    def __init__(
        self, resource_type: str, resource_id: str, available: list[str] | None = None
    ) -> None:
        """Initialize resource not found error.

        Args
        ----
            resource_type: Type of resource (e.g., "packages directory", "package")
            resource_id: Identifier of the missing resource
            available: List of available resources (optional)
        """
        msg = f"{resource_type[:1].upper()}{resource_type[1:]} '{resource_id}' not found"
        if available:
            msg += f". Available: {', '.join(available[:5])}"
            if len(available) > 5:
                msg += f" ... and {len(available) - 5} more"
        super().__init__(msg)
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.available = available


class DescriptorError(DistBatchError):
    """Raised when a package build descriptor cannot be read or is malformed."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Invalid build descriptor '{path}': {reason}")
        self.path = path
        self.reason = reason


# ============================================================================
# Graph Errors
# ============================================================================


class GraphError(DistBatchError):
    """Base exception for build graph construction and ordering errors."""

    pass


class DuplicatePackageError(GraphError):
    """Raised when two descriptors resolve to the same ``<package>-<version>``."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Package '{name}' is defined more than once")
        self.name = name


class UnresolvedDependencyError(GraphError):
    """Raised when a package depends on a package that was not loaded.

    Examples
    --------
    Example usage::

        raise UnresolvedDependencyError("e-1.0", "z")
    """

    def __init__(self, package: str, dependency: str) -> None:
        """Initialize unresolved dependency error.

        Args
        ----
            package: Full name of the package declaring the dependency
            dependency: Name of the dependency that has no node in the graph
        """
        super().__init__(f"Package '{package}' depends on '{dependency}', which is not loaded")
        self.package = package
        self.dependency = dependency


class CycleDetectedError(GraphError):
    """Raised when a build graph cannot be put into topological order."""

    def __init__(self, components: Sequence[Sequence[str]], message: str | None = None) -> None:
        """Initialize cycle error.

        Args
        ----
            components: The cyclic components, each a list of package names
            message: Optional override for the leading part of the message
        """
        self.components = [list(component) for component in components]
        rendered = "; ".join(" <-> ".join(component) for component in self.components)
        super().__init__(f"{message or 'Dependency cycle detected'}: {rendered}")


class UnbreakableCycleError(CycleDetectedError):
    """Raised when cycle breaking still leaves the graph unorderable."""

    def __init__(self, components: Sequence[Sequence[str]]) -> None:
        super().__init__(components, message="Could not break dependency cycles")


# ============================================================================
# Scheduling Errors
# ============================================================================


class ExecutorFaultError(DistBatchError):
    """Raised when the build execution mechanism itself is broken.

    This is distinct from a package failing to build: a fault cancels the
    whole batch, a build failure only removes the package and its dependents.
    """

    def __init__(self, package: str, reason: str) -> None:
        super().__init__(f"Build executor fault while building '{package}': {reason}")
        self.package = package
        self.reason = reason


class SchedulerInvariantError(DistBatchError):
    """Raised when the scheduler detects a corrupted state machine.

    This is a programming error, never an ordinary failure, and aborts the run.
    """

    def __init__(self, message: str, package: str | None = None) -> None:
        super().__init__(f"BUG: {message}")
        self.package = package


__all__ = [
    "ConfigurationError",
    "CycleDetectedError",
    "DescriptorError",
    "DistBatchError",
    "DuplicatePackageError",
    "ExecutorFaultError",
    "GraphError",
    "ResourceNotFoundError",
    "SchedulerInvariantError",
    "UnbreakableCycleError",
    "UnresolvedDependencyError",
    "ValidationError",
]
