"""Build graph primitives: PackageNode, BuildGraph and the graph builder.

An edge ``a -> b`` means "a requires b to be built first". Nodes are keyed by
their ``<package>-<version>`` name at every public entry point; integer ids
are only used for internal indexing and deterministic ordering.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from distbatch.core.domain.descriptor import PackageDescriptor
from distbatch.core.exceptions import (
    DuplicatePackageError,
    ResourceNotFoundError,
    UnresolvedDependencyError,
)
from distbatch.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class PackageNode:
    """One buildable unit in a BuildGraph."""

    id: int
    name: str


class BuildGraph:
    """Directed dependency graph stored as adjacency lists.

    Outgoing edges point from a package to its dependencies, incoming edges
    from a package to its dependents. Both directions are kept as
    insertion-ordered sets (dicts with ``None`` values) indexed by node id.

    Examples
    --------
    >>> graph = BuildGraph()
    >>> _ = graph.add_node("a-1")
    >>> _ = graph.add_node("b-1")
    >>> graph.add_edge("b-1", "a-1")
    >>> graph.dependencies("b-1")
    ['a-1']
    >>> graph.dependents("a-1")
    ['b-1']
    >>> graph.leaves()
    ['a-1']
    """

    def __init__(self) -> None:
        self._nodes: dict[int, PackageNode] = {}
        self._by_name: dict[str, PackageNode] = {}
        self._out: dict[int, dict[int, None]] = {}
        self._in: dict[int, dict[int, None]] = {}
        self._next_id = 0

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def add_node(self, name: str) -> PackageNode:
        """Add a package node and assign it the next id.

        Raises
        ------
        DuplicatePackageError
            If a node with the same name already exists.
        """
        if name in self._by_name:
            raise DuplicatePackageError(name)
        node = PackageNode(id=self._next_id, name=name)
        self._next_id += 1
        self._nodes[node.id] = node
        self._by_name[name] = node
        self._out[node.id] = {}
        self._in[node.id] = {}
        return node

    def add_edge(self, package: str, dependency: str) -> None:
        """Record that ``package`` requires ``dependency``.

        Adding an edge that already exists is a no-op.

        Raises
        ------
        UnresolvedDependencyError
            If either end has no node in the graph.
        """
        if package not in self._by_name:
            raise UnresolvedDependencyError(package, dependency)
        if dependency not in self._by_name:
            raise UnresolvedDependencyError(package, dependency)
        src = self._by_name[package].id
        dst = self._by_name[dependency].id
        self._out[src][dst] = None
        self._in[dst][src] = None

    def remove_edge(self, package: str, dependency: str) -> None:
        """Remove the edge ``package -> dependency`` if present."""
        src = self.node(package).id
        dst = self.node(dependency).id
        self._out[src].pop(dst, None)
        self._in[dst].pop(src, None)

    def remove_dependencies(self, name: str) -> list[str]:
        """Strip every outgoing edge of ``name``.

        Returns
        -------
        list[str]
            Names of the dependencies that were removed
        """
        src = self.node(name).id
        removed = [self._nodes[dst].name for dst in self._out[src]]
        for dst in self._out[src]:
            self._in[dst].pop(src, None)
        self._out[src] = {}
        return removed

    def copy(self) -> "BuildGraph":
        """Return an independent copy with identical ids and edge order."""
        clone = BuildGraph()
        clone._nodes = dict(self._nodes)
        clone._by_name = dict(self._by_name)
        clone._out = {node_id: dict(edges) for node_id, edges in self._out.items()}
        clone._in = {node_id: dict(edges) for node_id, edges in self._in.items()}
        clone._next_id = self._next_id
        return clone

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def node(self, name: str) -> PackageNode:
        """Look up a node by name.

        Raises
        ------
        ResourceNotFoundError
            If the graph has no such package.
        """
        try:
            return self._by_name[name]
        except KeyError:
            raise ResourceNotFoundError("package", name) from None

    def dependencies(self, name: str) -> list[str]:
        """Names of the packages ``name`` requires (outgoing edges)."""
        return [self._nodes[dst].name for dst in self._out[self.node(name).id]]

    def dependents(self, name: str) -> list[str]:
        """Names of the packages that require ``name`` (incoming edges)."""
        return [self._nodes[src].name for src in self._in[self.node(name).id]]

    def leaves(self) -> list[str]:
        """Packages without dependencies, in id order."""
        return [node.name for node in self if not self._out[node.id]]

    def edges(self) -> list[tuple[str, str]]:
        """All ``(package, dependency)`` pairs, grouped by package in id order."""
        return [
            (node.name, self._nodes[dst].name) for node in self for dst in self._out[node.id]
        ]

    @property
    def names(self) -> list[str]:
        """All package names in id order."""
        return [node.name for node in self]

    def out_degree(self, name: str) -> int:
        return len(self._out[self.node(name).id])

    def has_self_edge(self, name: str) -> bool:
        node_id = self.node(name).id
        return node_id in self._out[node_id]

    # ------------------------------------------------------------------
    # Container protocol
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[PackageNode]:
        return iter(sorted(self._nodes.values(), key=lambda node: node.id))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BuildGraph):
            return NotImplemented
        return self._nodes == other._nodes and self.edges() == other.edges()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"BuildGraph(nodes={len(self)}, edges={len(self.edges())})"


def build_graph(descriptors: Iterable[PackageDescriptor]) -> BuildGraph:
    """Turn package descriptors into a BuildGraph.

    Every descriptor becomes one node keyed by its full name; ids follow the
    input order. Each merged dependency becomes an edge, except a dependency
    on the package's own full name, which is dropped.

    Raises
    ------
    DuplicatePackageError
        If two descriptors share a full name.
    UnresolvedDependencyError
        If a dependency names a package that is not among the descriptors.
        This is fatal for the whole batch.
    """
    descriptors = list(descriptors)
    graph = BuildGraph()
    for descriptor in descriptors:
        graph.add_node(descriptor.full_name)

    for descriptor in descriptors:
        name = descriptor.full_name
        for dep in descriptor.dependencies:
            if dep == name:
                logger.debug("Dropping self-dependency of {name}", name=name)
                continue
            if dep not in graph:
                raise UnresolvedDependencyError(name, dep)
            graph.add_edge(name, dep)

    logger.info(
        "Built graph with {nodes} packages and {edges} dependency edges",
        nodes=len(graph),
        edges=len(graph.edges()),
    )
    return graph


__all__ = ["BuildGraph", "PackageNode", "build_graph"]
