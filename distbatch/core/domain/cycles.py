"""Ordering, cycle detection and cycle breaking for build graphs.

Self-hosting toolchains contain genuine bootstrap cycles, for example::

    bison -> help2man -> perl -> glibc -> bison

Such cycles are broken by treating every member of a cyclic component as if
it had no dependencies at all, i.e. it is built first with whatever the host
already provides. This over-relaxes ordering for large components that carry
incidental extra edges; removing only the edges on the cycle would keep more
constraints, but picking which edges to cut is a packaging policy decision
and the all-outgoing-edges rule is kept as is.
"""

import heapq
from dataclasses import dataclass, field

from distbatch.core.domain.graph import BuildGraph
from distbatch.core.exceptions import CycleDetectedError, UnbreakableCycleError
from distbatch.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CycleResolution:
    """Outcome of resolve_cycles().

    Attributes
    ----------
    graph : BuildGraph
        Acyclic graph to schedule. Identical to the input if it had no cycles.
    broken : tuple[str, ...]
        Packages whose dependencies were stripped, in id order
    components : tuple[tuple[str, ...], ...]
        The cyclic components that were found
    """

    graph: BuildGraph
    broken: tuple[str, ...] = ()
    components: tuple[tuple[str, ...], ...] = field(default_factory=tuple)

    @property
    def had_cycles(self) -> bool:
        return bool(self.components)


def strongly_connected_components(graph: BuildGraph) -> list[list[str]]:
    """Partition the graph into strongly connected components.

    Iterative Tarjan, so deep dependency chains do not hit the recursion
    limit. Members of each component are listed in id order; components come
    out in reverse topological order (dependencies first).

    Examples
    --------
    >>> g = BuildGraph()
    >>> for name in ("x", "y", "z"):
    ...     _ = g.add_node(name)
    >>> g.add_edge("x", "y"); g.add_edge("y", "x")
    >>> strongly_connected_components(g)
    [['x', 'y'], ['z']]
    """
    ids = {node.name: node.id for node in graph}
    index_of: dict[str, int] = {}
    lowlink: dict[str, int] = {}
    stack: list[str] = []
    on_stack: set[str] = set()
    components: list[list[str]] = []
    counter = 0

    def visit(name: str) -> None:
        nonlocal counter
        index_of[name] = lowlink[name] = counter
        counter += 1
        stack.append(name)
        on_stack.add(name)

    for root in graph.names:
        if root in index_of:
            continue
        visit(root)
        work = [(root, iter(graph.dependencies(root)))]
        while work:
            name, successors = work[-1]
            descended = False
            for succ in successors:
                if succ not in index_of:
                    visit(succ)
                    work.append((succ, iter(graph.dependencies(succ))))
                    descended = True
                    break
                if succ in on_stack:
                    lowlink[name] = min(lowlink[name], index_of[succ])
            if descended:
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[name])

            if lowlink[name] == index_of[name]:
                component: list[str] = []
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component.append(member)
                    if member == name:
                        break
                components.append(sorted(component, key=ids.__getitem__))

    return components


def cyclic_components(graph: BuildGraph) -> list[list[str]]:
    """Components that make the graph unorderable.

    That is every strongly connected component with more than one member,
    plus single packages that depend on themselves.
    """
    return [
        component
        for component in strongly_connected_components(graph)
        if len(component) > 1 or graph.has_self_edge(component[0])
    ]


def topological_order(graph: BuildGraph) -> list[str]:
    """Order packages so every dependency comes before its dependents.

    Among packages that are ready at the same time the lowest id goes first,
    so the order is deterministic.

    Raises
    ------
    CycleDetectedError
        If the graph contains a cycle.
    """
    ids = {node.name: node.id for node in graph}
    remaining = {name: graph.out_degree(name) for name in graph.names}
    ready = [(ids[name], name) for name, degree in remaining.items() if degree == 0]
    heapq.heapify(ready)

    order: list[str] = []
    while ready:
        _, name = heapq.heappop(ready)
        order.append(name)
        for dependent in graph.dependents(name):
            remaining[dependent] -= 1
            if remaining[dependent] == 0:
                heapq.heappush(ready, (ids[dependent], dependent))

    if len(order) != len(graph):
        raise CycleDetectedError(cyclic_components(graph))
    return order


def build_waves(graph: BuildGraph) -> list[list[str]]:
    """Group packages into waves that could build in parallel.

    Wave 0 holds the packages without dependencies; every later wave holds
    packages whose dependencies are all in earlier waves. Each wave is
    listed in id order.

    Raises
    ------
    CycleDetectedError
        If the graph contains a cycle.

    Examples
    --------
    >>> g = BuildGraph()
    >>> for name in ("a", "b", "c", "d"):
    ...     _ = g.add_node(name)
    >>> for pkg, dep in [("b", "a"), ("c", "a"), ("d", "b"), ("d", "c")]:
    ...     g.add_edge(pkg, dep)
    >>> build_waves(g)
    [['a'], ['b', 'c'], ['d']]
    """
    ids = {node.name: node.id for node in graph}
    remaining = {name: graph.out_degree(name) for name in graph.names}
    waves: list[list[str]] = []

    current = [name for name, degree in remaining.items() if degree == 0]
    while current:
        waves.append(sorted(current, key=ids.__getitem__))
        for name in current:
            del remaining[name]
        following = []
        for name in current:
            for dependent in graph.dependents(name):
                if dependent not in remaining:
                    continue
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    following.append(dependent)
        current = following

    if remaining:
        raise CycleDetectedError(cyclic_components(graph))
    return waves


def resolve_cycles(graph: BuildGraph) -> CycleResolution:
    """Return an acyclic version of ``graph`` and the packages that needed it.

    An already acyclic graph is returned unchanged (the same object), which
    makes resolving twice a no-op. Otherwise a copy is made and every member
    of every cyclic component loses all of its dependencies.

    Raises
    ------
    UnbreakableCycleError
        If the graph is still unorderable after breaking.
    """
    try:
        topological_order(graph)
    except CycleDetectedError as e:
        components = e.components
    else:
        return CycleResolution(graph=graph)

    resolved = graph.copy()
    ids = {node.name: node.id for node in graph}
    broken = sorted({name for component in components for name in component}, key=ids.get)
    for component in components:
        logger.info("Breaking cycle: {cycle}", cycle=" <-> ".join(component))
    for name in broken:
        removed = resolved.remove_dependencies(name)
        logger.debug("{name}: dropped dependencies {deps}", name=name, deps=removed)

    try:
        topological_order(resolved)
    except CycleDetectedError as e:
        raise UnbreakableCycleError(e.components) from e

    logger.info("{count} packages need a cycle break", count=len(broken))
    return CycleResolution(
        graph=resolved,
        broken=tuple(broken),
        components=tuple(tuple(component) for component in components),
    )


__all__ = [
    "CycleResolution",
    "build_waves",
    "cyclic_components",
    "resolve_cycles",
    "strongly_connected_components",
    "topological_order",
]
