"""Strongly connected components (Kosaraju's algorithm).

See https://en.wikipedia.org/wiki/Kosaraju%27s_algorithm
"""

from __future__ import annotations

from collections import deque
from typing import Iterable, Mapping


def _ordered_nodes(graph: Mapping[str, Iterable[str]]) -> list[str]:
    """Graph keys in order, followed by nodes only seen as neighbours."""
    nodes = list(graph)
    seen = set(nodes)
    for neighbours in graph.values():
        for node in neighbours:
            if node not in seen:
                seen.add(node)
                nodes.append(node)
    return nodes


def transpose(graph: Mapping[str, Iterable[str]]) -> dict[str, list[str]]:
    """Reverse every edge of ``graph``. Every node of ``graph`` is a key."""
    reversed_graph: dict[str, list[str]] = {node: [] for node in _ordered_nodes(graph)}
    for vertex, neighbours in graph.items():
        for neighbour in neighbours:
            reversed_graph[neighbour].append(vertex)
    return reversed_graph


def finishing_order(graph: Mapping[str, Iterable[str]]) -> deque[str]:
    """First pass: depth-first post-order over the original graph.

    A node is pushed to the front of the stack once all of its unvisited
    neighbours have finished, so the front holds the last node to finish.
    Uses an explicit call stack to avoid Python recursion limits on deep
    dependency chains.
    """
    adjacency = {node: sorted(neighbours) for node, neighbours in graph.items()}
    stack: deque[str] = deque()
    visited: set[str] = set()

    for root in _ordered_nodes(graph):
        if root in visited:
            continue

        visited.add(root)
        # Each frame is (node, neighbour_iterator)
        call_stack = [(root, iter(adjacency.get(root, ())))]

        while call_stack:
            vertex, neighbours = call_stack[-1]
            descended = False
            for neighbour in neighbours:
                if neighbour not in visited:
                    visited.add(neighbour)
                    call_stack.append((neighbour, iter(adjacency.get(neighbour, ()))))
                    descended = True
                    break

            if not descended:
                call_stack.pop()
                stack.appendleft(vertex)

    return stack


def _collect_component(
    start: str, reversed_graph: Mapping[str, list[str]], visited: set[str]
) -> set[str]:
    """Second pass traversal: every node reachable from ``start`` in the transpose."""
    component = {start}
    visited.add(start)
    pending = [start]

    while pending:
        vertex = pending.pop()
        for neighbour in reversed_graph.get(vertex, ()):
            if neighbour not in visited:
                visited.add(neighbour)
                component.add(neighbour)
                pending.append(neighbour)

    return component


def strongly_connected_components(graph: Mapping[str, Iterable[str]]) -> list[set[str]]:
    """Compute the strongly connected components of a directed graph.

    Args:
        graph: Adjacency list; ``graph[a]`` holds the nodes ``a`` points to

    Returns:
        Components in discovery order. Every node appears in exactly one
        component; a node with no cyclic partners is a singleton.
    """
    reversed_graph = transpose(graph)
    stack = finishing_order(graph)

    visited: set[str] = set()
    components: list[set[str]] = []

    while stack:
        vertex = stack.popleft()
        if vertex in visited:
            continue
        components.append(_collect_component(vertex, reversed_graph, visited))

    return components


def coupling_score(component_count: int, module_count: int) -> float:
    """Components per module. 0 when there are no modules."""
    if module_count == 0:
        return 0.0
    return component_count / module_count


__all__ = [
    "coupling_score",
    "finishing_order",
    "strongly_connected_components",
    "transpose",
]
