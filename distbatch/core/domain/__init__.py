"""Domain models: package descriptors, the build graph and cycle handling."""

from distbatch.core.domain.cycles import (
    CycleResolution,
    build_waves,
    cyclic_components,
    resolve_cycles,
    strongly_connected_components,
    topological_order,
)
from distbatch.core.domain.descriptor import PackageDescriptor
from distbatch.core.domain.graph import BuildGraph, PackageNode, build_graph

__all__ = [
    "BuildGraph",
    "CycleResolution",
    "PackageDescriptor",
    "PackageNode",
    "build_graph",
    "build_waves",
    "cyclic_components",
    "resolve_cycles",
    "strongly_connected_components",
    "topological_order",
]
