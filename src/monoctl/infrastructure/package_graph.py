"""PackageGraph: NetworkX graph of local package dependencies.

Built per command run from the project's packages only; dependencies on
packages outside the project are not represented. Edges point from a
dependency to its dependent, so a package may start once all of its
predecessors have finished.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TypeAlias

import networkx as nx

from monoctl.domain.errors import ValidationError
from monoctl.domain.package import Package

_Graph: TypeAlias = nx.DiGraph


class PackageGraph:
    """Dependency graph among the packages of one project."""

    def __init__(self, packages: Iterable[Package], *, include_dev: bool = True) -> None:
        g: _Graph = nx.DiGraph()
        pkgs = list(packages)
        for pkg in pkgs:
            if pkg.name in g:
                existing = g.nodes[pkg.name]["package"]
                raise ValidationError(
                    "ENAME",
                    f"Package name {pkg.name!r} used in multiple packages: "
                    f"{existing.location} and {pkg.location}",
                )
            g.add_node(pkg.name, package=pkg)

        for pkg in pkgs:
            for dep_name, spec in pkg.dependencies(include_dev=include_dev).items():
                if dep_name in g and dep_name != pkg.name:
                    g.add_edge(dep_name, pkg.name, spec=spec)

        self._graph = g
        self._components: dict[str, int] | None = None

    @property
    def graph(self) -> _Graph:
        return self._graph

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    def __contains__(self, name: object) -> bool:
        return name in self._graph

    def __iter__(self) -> Iterator[str]:
        return iter(self._graph.nodes)

    @property
    def packages(self) -> list[Package]:
        return [data["package"] for _, data in self._graph.nodes(data=True)]

    def get(self, name: str) -> Package:
        return self._graph.nodes[name]["package"]

    def dependencies(self, name: str) -> set[str]:
        """Local packages *name* depends on."""
        return set(self._graph.predecessors(name))

    def dependents(self, name: str) -> set[str]:
        """Local packages depending on *name*."""
        return set(self._graph.successors(name))

    def cycles(self) -> list[set[str]]:
        """Groups of packages that depend on each other."""
        return [
            set(component)
            for component in nx.strongly_connected_components(self._graph)
            if len(component) > 1
        ]

    def blocking_dependencies(self, name: str) -> set[str]:
        """Dependencies that must finish before *name* may start.

        Packages in the same cycle never block each other.
        """
        components = self._component_index()
        own = components[name]
        return {dep for dep in self._graph.predecessors(name) if components[dep] != own}

    def topological_batches(self) -> list[list[Package]]:
        """Packages grouped so every batch only depends on earlier ones."""
        condensed = nx.condensation(self._graph)
        batches: list[list[Package]] = []
        for generation in nx.topological_generations(condensed):
            names = sorted(
                name for component in generation for name in condensed.nodes[component]["members"]
            )
            batches.append([self.get(name) for name in names])
        return batches

    def _component_index(self) -> dict[str, int]:
        if self._components is None:
            self._components = {}
            for index, component in enumerate(nx.strongly_connected_components(self._graph)):
                for name in component:
                    self._components[name] = index
        return self._components
