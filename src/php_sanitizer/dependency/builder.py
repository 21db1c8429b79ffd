"""Build the module dependency graph from per-module declarations."""

from __future__ import annotations

from typing import Mapping

from ..models import Module


def build_graph(declarations: Mapping[str, Module]) -> dict[str, set[str]]:
    """Build the module dependency graph as an adjacency list.

    Module A depends on module B (edge A -> B) when A uses at least one
    symbol that B declares. Every module appears as a key, even with no
    dependencies. Self edges are never added.
    """
    graph: dict[str, set[str]] = {name: set() for name in declarations}

    for name, module in declarations.items():
        if not module.uses:
            continue
        for other_name, other in declarations.items():
            if other_name == name:
                continue
            if not module.uses.isdisjoint(other.declares):
                graph[name].add(other_name)

    return graph
